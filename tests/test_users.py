"""Public user lookups."""


def test_get_user_public_profile(client, farmer):
    _, user = farmer
    res = client.get(f"/users/{user['id']}")
    body = res.get_json()
    assert res.status_code == 200
    assert body["name"] == user["name"]
    assert body["profile"]["address"] == "Village Road, Nashik"
    assert "password" not in body


def test_get_user_unknown_and_malformed_ids(client):
    assert client.get("/users/65f000000000000000000000").status_code == 404
    assert client.get("/users/not-an-id").get_json() == {"message": "User not found"}


def test_farmers_list_paginates_farmers_only(client, api):
    for _ in range(3):
        api.register("farmer")
    api.register("buyer")

    res = client.get("/users/farmers/list?page=1&limit=2")
    body = res.get_json()
    assert res.status_code == 200
    assert len(body["farmers"]) == 2
    assert all(f["role"] == "farmer" for f in body["farmers"])
    assert body["pagination"] == {
        "currentPage": 1,
        "totalPages": 2,
        "totalItems": 3,
        "itemsPerPage": 2,
        "hasNextPage": True,
        "hasPrevPage": False,
    }


def test_farmers_list_rejects_oversized_page(client):
    assert client.get("/users/farmers/list?limit=500").status_code == 400
