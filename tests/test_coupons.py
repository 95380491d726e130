from datetime import datetime, timedelta, timezone


def iso(days):
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def create_coupon(admin_client, **fields):
    data = {"code": "save10", "discountType": "percentage", "discountValue": 10, "expiryDate": iso(30), "minPurchase": 100}
    data.update(fields)
    return admin_client.post("/api/coupons", json=data)


def test_create_stores_uppercase_code(admin_client):
    res = create_coupon(admin_client)
    assert res.status_code == 201
    coupon = res.json()["coupon"]
    assert coupon["code"] == "SAVE10"
    assert coupon["usageLimit"] == 0
    assert coupon["usedCount"] == 0


def test_create_validation(admin_client):
    assert create_coupon(admin_client, discountValue=None).status_code == 400
    assert create_coupon(admin_client, discountType="bogo").status_code == 400
    assert create_coupon(admin_client, expiryDate=None).status_code == 400


def test_duplicate_code_conflicts(admin_client):
    create_coupon(admin_client)
    res = create_coupon(admin_client, code=" Save10 ")
    assert res.status_code == 409
    assert res.json()["error"] == "Coupon code already exists"


def test_apply_percentage_coupon(client, admin_client):
    create_coupon(admin_client)
    res = client.post("/api/coupons/apply", json={"code": "SAVE10", "cartTotal": 500})
    assert res.status_code == 200
    assert res.json() == {"success": True, "discount": 50, "discountedTotal": 450, "couponCode": "SAVE10"}


def test_apply_normalises_the_code(client, admin_client):
    create_coupon(admin_client)
    assert client.post("/api/coupons/apply", json={"code": "  save10 ", "cartTotal": 500}).status_code == 200


def test_apply_failures(client, admin_client):
    create_coupon(admin_client)
    create_coupon(admin_client, code="OLD", expiryDate=iso(-1))
    create_coupon(admin_client, code="FLAT", discountType="fixed", discountValue=2000, minPurchase=0)

    res = client.post("/api/coupons/apply", json={"code": "SAVE10", "cartTotal": 99})
    assert res.status_code == 400
    assert "discount" not in res.json()

    res = client.post("/api/coupons/apply", json={"code": "OLD", "cartTotal": 500})
    assert res.status_code == 400
    assert res.json()["error"] == "Coupon expired"

    res = client.post("/api/coupons/apply", json={"code": "NOPE", "cartTotal": 500})
    assert res.status_code == 404
    assert res.json()["error"] == "Invalid coupon code!"

    res = client.post("/api/coupons/apply", json={"code": "SAVE10"})
    assert res.status_code == 400

    res = client.post("/api/coupons/apply", json={"code": "FLAT", "cartTotal": 1500})
    assert res.json()["discount"] == 1500
    assert res.json()["discountedTotal"] == 0


def test_usage_limit_and_apply_does_not_count_uses(client, admin_client, mock_db):
    create_coupon(admin_client, code="ONCE", usageLimit=1)
    for _ in range(3):
        assert client.post("/api/coupons/apply", json={"code": "ONCE", "cartTotal": 500}).status_code == 200
    assert mock_db["coupon"].find_one({"code": "ONCE"})["usedCount"] == 0

    mock_db["coupon"].update_one({"code": "ONCE"}, {"$set": {"usedCount": 1}})
    res = client.post("/api/coupons/apply", json={"code": "ONCE", "cartTotal": 500})
    assert res.status_code == 400
    assert res.json()["error"] == "Coupon usage limit reached"


def test_list_and_delete(client, admin_client):
    coupon = create_coupon(admin_client).json()["coupon"]
    assert client.get("/api/coupons").status_code == 401
    assert [c["code"] for c in admin_client.get("/api/coupons").json()["coupons"]] == ["SAVE10"]

    assert admin_client.delete(f"/api/coupons/{coupon['id']}").status_code == 200
    assert admin_client.delete(f"/api/coupons/{coupon['id']}").status_code == 404
