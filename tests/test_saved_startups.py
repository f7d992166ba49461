from conftest import auth, create_startup


def test_save_check_list_unsave(client, founder, investor):
    startup_id = create_startup(founder)

    check = client.get(f"/api/saved-startups/{startup_id}/check", headers=auth(investor))
    assert check.json() == {"is_saved": False}

    saved = client.post(f"/api/saved-startups/{startup_id}", headers=auth(investor))
    assert saved.status_code == 200
    assert saved.json()["startup_id"] == startup_id

    check = client.get(f"/api/saved-startups/{startup_id}/check", headers=auth(investor))
    assert check.json() == {"is_saved": True}

    listing = client.get("/api/saved-startups", headers=auth(investor)).json()
    assert len(listing) == 1
    assert listing[0]["startup"]["title"] == "GreenLedger"

    removed = client.delete(f"/api/saved-startups/{startup_id}", headers=auth(investor))
    assert removed.json() == {"success": True}
    assert client.get("/api/saved-startups", headers=auth(investor)).json() == []


def test_saving_twice_is_idempotent(client, founder, investor):
    startup_id = create_startup(founder)
    first = client.post(f"/api/saved-startups/{startup_id}", headers=auth(investor)).json()
    second = client.post(f"/api/saved-startups/{startup_id}", headers=auth(investor)).json()
    assert first["id"] == second["id"]
    assert len(client.get("/api/saved-startups", headers=auth(investor)).json()) == 1


def test_save_unknown_startup(client, investor):
    assert client.post("/api/saved-startups/missing", headers=auth(investor)).status_code == 404


def test_founders_cannot_save(client, founder):
    startup_id = create_startup(founder)
    assert client.post(f"/api/saved-startups/{startup_id}", headers=auth(founder)).status_code == 403
    assert client.get("/api/saved-startups", headers=auth(founder)).status_code == 403
