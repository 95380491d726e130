from conftest import png_file


def test_create_with_image(admin_client, cdn):
    res = admin_client.post(
        "/api/categories",
        data={"name": "Protein", "isFeatured": "true", "sliderOrder": "2"},
        files={"image": png_file()},
    )
    assert res.status_code == 201
    category = res.json()["category"]
    assert category["imageId"] == "categories/img1"
    assert category["isFeatured"] is True
    assert category["sliderOrder"] == 2


def test_slider_order_only_for_featured(admin_client):
    res = admin_client.post("/api/categories", data={"name": "Vitamins", "isFeatured": "false", "sliderOrder": "3"})
    category = res.json()["category"]
    assert category["isFeatured"] is False
    assert category["sliderOrder"] is None
    assert category["image"] == ""


def test_create_requires_name_and_admin(client, admin_client):
    assert admin_client.post("/api/categories", data={"name": " "}).status_code == 400
    assert client.post("/api/categories", data={"name": "Protein"}).status_code == 401


def test_non_image_is_rejected(admin_client, cdn):
    res = admin_client.post(
        "/api/categories", data={"name": "Protein"}, files={"image": ("cat.pdf", b"%PDF", "application/pdf")}
    )
    assert res.status_code == 400
    assert cdn["uploaded"] == []


def test_slider_lists_featured_in_order(client, admin_client):
    admin_client.post("/api/categories", data={"name": "Creatine", "isFeatured": "true", "sliderOrder": "2"})
    admin_client.post("/api/categories", data={"name": "Protein", "isFeatured": "true", "sliderOrder": "1"})
    admin_client.post("/api/categories", data={"name": "Gear"})

    slider = client.get("/api/categories/slider/home").json()["categories"]
    assert [c["name"] for c in slider] == ["Protein", "Creatine"]
    assert len(client.get("/api/categories").json()["categories"]) == 3


def test_update_replaces_image_and_keeps_slider_order(admin_client, cdn):
    category = admin_client.post(
        "/api/categories",
        data={"name": "Protein", "isFeatured": "true", "sliderOrder": "4"},
        files={"image": png_file()},
    ).json()["category"]

    res = admin_client.put(
        f"/api/categories/{category['id']}",
        data={"isFeatured": "true"},
        files={"image": png_file("new.png")},
    )
    assert res.status_code == 200
    updated = res.json()["category"]
    assert updated["name"] == "Protein"
    assert updated["sliderOrder"] == 4
    assert updated["imageId"] == "categories/img2"
    assert cdn["deleted"] == ["categories/img1"]

    res = admin_client.put(f"/api/categories/{category['id']}", data={"isFeatured": "false"})
    assert res.json()["category"]["sliderOrder"] is None


def test_update_and_delete_missing(admin_client):
    missing = "0123456789abcdef01234567"
    assert admin_client.put(f"/api/categories/{missing}", data={"name": "x"}).status_code == 404
    assert admin_client.delete(f"/api/categories/{missing}").status_code == 404
    assert admin_client.delete("/api/categories/nope").status_code == 400


def test_delete_survives_storage_failure(client, admin_client, cdn):
    category = admin_client.post(
        "/api/categories", data={"name": "Protein"}, files={"image": png_file()}
    ).json()["category"]
    cdn["fail_delete"] = True
    assert admin_client.delete(f"/api/categories/{category['id']}").status_code == 200
    assert client.get("/api/categories").json()["categories"] == []
