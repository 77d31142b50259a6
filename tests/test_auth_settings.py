from clientpulse.core.security import hash_password, verify_password
from clientpulse.main import app
from clientpulse.models import User
from clientpulse.routes.settings import validate_password_change


def _login(client, email, password):
    response = client.post("/login", data={"email": email, "password": password}, follow_redirects=False)
    assert response.status_code == 303


def _user(email="owner@test.local"):
    db = app.state.testing_sessionmaker()
    try:
        return db.query(User).filter(User.email == email).one()
    finally:
        db.close()


def test_password_hashing_round_trip():
    hashed = hash_password("s3cret!")
    assert hashed != "s3cret!"
    assert verify_password("s3cret!", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret!", "not-a-bcrypt-hash")


def test_login_rejects_bad_credentials(client):
    response = client.post("/login", data={"email": "owner@test.local", "password": "nope"}, follow_redirects=False)
    assert response.status_code == 401
    assert "Invalid credentials" in response.text


def test_signup_creates_user_and_session(client):
    response = client.post(
        "/signup",
        data={"email": "New@Test.local", "password": "abcdef", "first_name": "Nia"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert _user("new@test.local").first_name == "Nia"
    assert client.get("/dashboard").status_code == 200


def test_signup_validation(client):
    short = client.post("/signup", data={"email": "a@b.c", "password": "12345"}, follow_redirects=False)
    assert short.status_code == 400
    assert "at least 6 characters" in short.text

    taken = client.post("/signup", data={"email": "owner@test.local", "password": "abcdef"}, follow_redirects=False)
    assert taken.status_code == 400
    assert "already exists" in taken.text


def test_logout_clears_session(client):
    _login(client, "owner@test.local", "pass1234")
    assert client.post("/logout", follow_redirects=False).status_code == 303
    assert client.get("/dashboard").status_code == 401


def test_profile_partial_update(client):
    _login(client, "owner@test.local", "pass1234")
    assert client.get("/settings").status_code == 200

    response = client.post("/settings/profile", data={"company": "Owner & Co"}, follow_redirects=False)
    assert response.status_code == 303
    user = _user()
    assert user.company == "Owner & Co"
    assert user.first_name == "Olive"
    assert user.last_name == "Owner"

    client.post("/settings/profile", data={"phone": " 555-0100 ", "first_name": "Liv"}, follow_redirects=False)
    user = _user()
    assert (user.first_name, user.phone) == ("Liv", "555-0100")
    assert user.company == "Owner & Co"


def test_validate_password_change_messages():
    assert validate_password_change("", "abcdef", "abcdef") == "Please fill in all password fields."
    assert validate_password_change("pass1234", "abc", "abc") == "New password must be at least 6 characters long."
    assert validate_password_change("pass1234", "abcdef", "abcdeg") == "New password and confirmation do not match."
    assert validate_password_change("pass1234", "pass1234", "pass1234") == "New password must be different from current password."
    assert validate_password_change("pass1234", "abcdef", "abcdef") is None


def test_change_password(client):
    _login(client, "owner@test.local", "pass1234")

    wrong = client.post(
        "/settings/password",
        data={"current_password": "nope1234", "new_password": "newpass1", "confirm_password": "newpass1"},
        follow_redirects=False,
    )
    assert wrong.status_code == 400
    assert wrong.json()["detail"] == "Current password is incorrect."

    ok = client.post(
        "/settings/password",
        data={"current_password": "pass1234", "new_password": "newpass1", "confirm_password": "newpass1"},
        follow_redirects=False,
    )
    assert ok.status_code == 303
    assert verify_password("newpass1", _user().password_hash)

    client.post("/logout", follow_redirects=False)
    assert client.post("/login", data={"email": "owner@test.local", "password": "pass1234"}, follow_redirects=False).status_code == 401
    _login(client, "owner@test.local", "newpass1")


def test_pending_toast_does_not_follow_a_new_login(client):
    _login(client, "owner@test.local", "pass1234")
    created = client.post("/clients", data={"name": "Dana Reyes", "company": "Acme", "source": "Referral"}, follow_redirects=False)
    assert created.status_code == 303

    _login(client, "viewer@test.local", "pass1234")
    assert "Dana Reyes" not in client.get("/dashboard").text


def test_logout_drops_pending_toast(client):
    _login(client, "owner@test.local", "pass1234")
    client.post("/clients", data={"name": "Dana Reyes", "company": "Acme", "source": "Referral"}, follow_redirects=False)
    client.post("/logout", follow_redirects=False)
    assert "Dana Reyes" not in client.get("/login").text
