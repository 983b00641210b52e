from datetime import date

PHONE = "79001234567"
OTHER_PHONE = "79007654321"

WAR_AND_PEACE = {
    "title": "War and Peace",
    "author": "Tolstoy",
    "coverType": "hard",
    "publicationYear": 1869,
    "genre": "Novel",
    "pageCount": 1225,
    "conditionState": "new",
    "status": "available",
}


def register(client, phone=PHONE, first="Lev", last="Tolstoy", dob="1828-09-09"):
    return client.post("/readers", json={"phone": phone, "firstName": first, "lastName": last, "dob": dob})


def add_book(client, payload=None):
    response = client.post("/books", json=payload or WAR_AND_PEACE)
    assert response.status_code == 200
    return response.json()["id"]


def test_get_books_empty(client):
    response = client.get("/books")
    assert response.status_code == 200
    assert response.json() == []


def test_add_book(client):
    response = client.post("/books", json=WAR_AND_PEACE)
    assert response.status_code == 200
    body = response.json()
    assert body["message"]
    assert isinstance(body["id"], int)

    books = client.get("/books").json()
    assert len(books) == 1
    book = books[0]
    assert book["id"] == body["id"]
    assert book["title"] == "War and Peace"
    assert book["cover_type"] == "hard"
    assert book["publication_year"] == 1869
    assert book["status"] == "available"
    assert book["borrower_phone"] is None
    assert book["borrowed_date"] is None
    assert book["first_name"] is None


def test_add_book_missing_title(client):
    response = client.post("/books", json={**WAR_AND_PEACE, "title": ""})
    assert response.status_code == 400
    assert "required" in response.json()["error"]

    response = client.post("/books", json={"author": "Tolstoy"})
    assert response.status_code == 400
    assert client.get("/books").json() == []


def test_add_book_invalid_enum(client):
    response = client.post("/books", json={**WAR_AND_PEACE, "coverType": "leather"})
    assert response.status_code == 400
    assert "coverType" in response.json()["error"]


def test_add_book_as_borrowed_is_rejected(client):
    response = client.post("/books", json={**WAR_AND_PEACE, "status": "borrowed"})
    assert response.status_code == 400


def test_get_single_book(client):
    book_id = add_book(client)
    response = client.get(f"/books/{book_id}")
    assert response.status_code == 200
    assert response.json()["title"] == "War and Peace"

    assert client.get("/books/999").status_code == 404


def test_delete_book(client):
    book_id = add_book(client)
    response = client.delete(f"/books/{book_id}")
    assert response.status_code == 200
    assert response.json()["message"]
    assert client.get("/books").json() == []


def test_delete_missing_book(client):
    add_book(client)
    response = client.delete("/books/9999")
    assert response.status_code == 404
    assert "error" in response.json()
    assert len(client.get("/books").json()) == 1


def test_register_reader(client):
    response = register(client)
    assert response.status_code == 200
    assert response.json()["id"] == PHONE

    readers = client.get("/readers").json()
    assert readers == [{
        "phone": PHONE,
        "first_name": "Lev",
        "last_name": "Tolstoy",
        "birth_date": "1828-09-09",
        "registration_date": date.today().isoformat(),
    }]


def test_register_duplicate_reader(client):
    assert register(client).status_code == 200
    response = register(client, first="Other")
    assert response.status_code == 409
    assert "already exists" in response.json()["error"]
    assert len(client.get("/readers").json()) == 1


def test_register_reader_missing_field(client):
    response = client.post("/readers", json={"phone": PHONE, "firstName": "Lev", "lastName": "Tolstoy"})
    assert response.status_code == 400


def test_register_reader_bad_phone(client):
    response = register(client, phone="12345")
    assert response.status_code == 400
    assert client.get("/readers").json() == []


def test_readers_ordered_by_last_name(client):
    register(client, phone=PHONE, last="Tolstoy")
    register(client, phone=OTHER_PHONE, last="Chekhov")
    assert [r["last_name"] for r in client.get("/readers").json()] == ["Chekhov", "Tolstoy"]


def test_borrow_and_return_flow(client):
    book_id = add_book(client)
    register(client)
    register(client, phone=OTHER_PHONE, first="Anton", last="Chekhov")

    response = client.post("/borrow", json={"bookId": book_id, "phone": PHONE})
    assert response.status_code == 200

    book = client.get("/books").json()[0]
    assert book["status"] == "borrowed"
    assert book["borrower_phone"] == PHONE
    assert book["borrowed_date"] == date.today().isoformat()
    assert (book["first_name"], book["last_name"]) == ("Lev", "Tolstoy")

    response = client.post("/borrow", json={"bookId": book_id, "phone": OTHER_PHONE})
    assert response.status_code == 400
    assert "not available" in response.json()["error"]
    assert client.get("/books").json()[0]["borrower_phone"] == PHONE

    response = client.post("/return", json={"bookId": book_id})
    assert response.status_code == 200
    book = client.get("/books").json()[0]
    assert book["status"] == "available"
    assert book["borrower_phone"] is None
    assert book["borrowed_date"] is None


def test_borrow_unregistered_reader(client):
    book_id = add_book(client)
    response = client.post("/borrow", json={"bookId": book_id, "phone": PHONE})
    assert response.status_code == 404
    assert "Reader not found" in response.json()["error"]


def test_borrow_missing_book(client):
    register(client)
    response = client.post("/borrow", json={"bookId": 4242, "phone": PHONE})
    assert response.status_code == 404


def test_borrow_missing_fields(client):
    assert client.post("/borrow", json={"phone": PHONE}).status_code == 400
    assert client.post("/borrow", json={"bookId": 1}).status_code == 400


def test_return_is_unconditional(client):
    book_id = add_book(client)
    assert client.post("/return", json={"bookId": book_id}).status_code == 200
    assert client.post("/return", json={"bookId": 9999}).status_code == 200
    assert client.get("/books").json()[0]["status"] == "available"


def test_return_missing_book_id(client):
    assert client.post("/return", json={}).status_code == 400


def test_stats(client):
    book_id = add_book(client)
    add_book(client, {**WAR_AND_PEACE, "title": "Anna Karenina"})
    register(client)
    client.post("/borrow", json={"bookId": book_id, "phone": PHONE})

    response = client.get("/stats")
    assert response.status_code == 200
    assert response.json() == {"total_books": 2, "borrowed_books": 1, "readers": 1}


def test_health_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["db"] is True
    assert "timestamp" in data


def test_store_failure_is_reported_as_500(app, client):
    app.state.library.db.close()
    response = client.get("/books")
    assert response.status_code == 500
    assert response.json() == {"error": "Database is closed"}


def test_add_book_requires_status(client):
    payload = {k: v for k, v in WAR_AND_PEACE.items() if k != "status"}
    response = client.post("/books", json=payload)
    assert response.status_code == 400
    assert "status" in response.json()["error"]
    assert client.get("/books").json() == []


def test_ids_beyond_integer_range_are_not_found(client):
    add_book(client)
    register(client)
    huge = 2 ** 70

    for response in (
        client.get(f"/books/{huge}"),
        client.delete(f"/books/{huge}"),
        client.post("/borrow", json={"bookId": huge, "phone": PHONE}),
    ):
        assert response.status_code == 404
        assert "not found" in response.json()["error"]

    response = client.post("/return", json={"bookId": huge})
    assert response.status_code == 200
    assert len(client.get("/books").json()) == 1
