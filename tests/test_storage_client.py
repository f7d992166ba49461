from pitchmatch.storage import client as supabase_client


def test_missing_credentials_are_reported_once(monkeypatch):
    calls = []

    def fake_initialize():
        calls.append(1)
        return None

    monkeypatch.setattr(supabase_client, "_init_attempted", False)
    monkeypatch.setattr(supabase_client, "initialize_supabase", fake_initialize)

    assert supabase_client.get_supabase() is None
    assert supabase_client.get_supabase() is None
    assert len(calls) == 1


def test_initialize_without_credentials_returns_none(caplog):
    assert supabase_client.initialize_supabase() is None
    assert "not set" in caplog.text


def test_existing_client_is_reused(monkeypatch):
    sentinel = object()
    monkeypatch.setattr(supabase_client, "supabase", sentinel)
    assert supabase_client.get_supabase() is sentinel
