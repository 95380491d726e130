def test_submit_contact(client, mock_db):
    res = client.post(
        "/api/contact",
        json={"name": "Usman", "email": "usman@shark.pk", "tel": "0300", "subjects": "Order", "message": "Where is it?"},
    )
    assert res.status_code == 201
    assert res.json() == {"success": True, "message": "Form submitted successfully!"}
    stored = mock_db["contact"].find_one({"email": "usman@shark.pk"})
    assert stored["phone"] == "0300"
    assert stored["subjects"] == "Order"


def test_subject_list_is_joined(client, mock_db):
    client.post("/api/contact", json={"name": "Usman", "email": "u@shark.pk", "subjects": ["Order", "Refund"]})
    assert mock_db["contact"].find_one()["subjects"] == "Order, Refund"


def test_name_and_email_required(client):
    res = client.post("/api/contact", json={"name": "Usman"})
    assert res.status_code == 400
    assert res.json()["error"] == "Name and email are required."


def test_admin_lists_submissions(client, admin_client):
    client.post("/api/contact", json={"name": "Usman", "email": "usman@shark.pk"})
    assert client.get("/api/contact").status_code == 401
    contacts = admin_client.get("/api/contact").json()["contacts"]
    assert [c["name"] for c in contacts] == ["Usman"]
