def test_categories_and_tags(api_client, seed):
    seed.category("dinner", en="Dinner", pt="Jantar")
    seed.category("dessert", en="Dessert")
    seed.tag("vegan")

    resp = api_client.get("/categories")
    assert resp.status_code == 200
    assert resp.json() == {"items": [
        {"id": "dessert", "labels": {"en": "Dessert"}},
        {"id": "dinner", "labels": {"en": "Dinner", "pt": "Jantar"}},
    ]}
    assert [t["id"] for t in api_client.get("/tags").json()["items"]] == ["vegan"]
