import pytest

from auth import PASSWORD_RECOVERY, SESSION_KEY, SIGNED_IN, SIGNED_OUT, AuthService, pwd_context
from schemas import TABLES
from storage import MemoryStorage, StorageError
from store import CART_KEY, WISHLIST_KEY


@pytest.fixture
def auth(mongo_db, storage):
    return AuthService(mongo_db, storage=storage, secret_key="test-secret")


def make_admin(mongo_db, email="admin@example.com", password="admin-pass"):
    mongo_db[TABLES["users"]].insert_one({
        "email": email,
        "password_hash": pwd_context.hash(password),
        "role": "admin",
        "is_active": True,
    })


def test_sign_up_signs_in_and_persists_session(auth, storage):
    events = []
    auth.on_auth_state_change(lambda event, session: events.append(event))

    result = auth.sign_up("Shopper@Example.com", "secret1", "Sam Shopper")

    assert result.ok, result.error
    assert result.data["user"].email == "shopper@example.com"
    assert storage.get_item(SESSION_KEY) is not None
    assert auth.get_user().data.full_name == "Sam Shopper"
    assert events == [SIGNED_IN]


def test_duplicate_and_weak_sign_up(auth):
    assert auth.sign_up("a@example.com", "123").error.startswith("Password must be")
    assert auth.sign_up("a@example.com", "secret1").ok
    assert auth.sign_up("a@example.com", "secret1").error == "User already registered"


def test_sign_in_checks_password(auth):
    auth.sign_up("a@example.com", "secret1")
    auth.sign_out()
    assert auth.sign_in("a@example.com", "wrong").error == "Invalid login credentials"
    assert auth.sign_in("nobody@example.com", "secret1").error == "Invalid login credentials"
    assert auth.sign_in("A@example.com", "secret1").ok


def test_sign_out_clears_local_state(auth, storage):
    auth.sign_up("a@example.com", "secret1")
    storage.set_item(CART_KEY, "[]")
    storage.set_item(WISHLIST_KEY, "[]")
    events = []
    auth.on_auth_state_change(lambda event, session: events.append((event, session)))

    auth.sign_out()

    assert storage.keys() == []
    assert auth.get_session() is None
    assert auth.get_user().data is None
    assert events == [(SIGNED_OUT, None)]


class CartRemovalFails(MemoryStorage):
    def remove_item(self, key, origin=None):
        if key == CART_KEY:
            raise StorageError("disk full")
        super().remove_item(key, origin=origin)


def test_sign_out_survives_storage_failure(mongo_db):
    storage = CartRemovalFails()
    auth = AuthService(mongo_db, storage=storage, secret_key="test-secret")
    auth.sign_up("a@example.com", "secret1")
    storage.set_item(CART_KEY, "[]")
    storage.set_item(WISHLIST_KEY, "[]")
    events = []
    auth.on_auth_state_change(lambda event, session: events.append(event))

    result = auth.sign_out()

    assert result.ok
    assert storage.keys() == [CART_KEY]
    assert auth.get_session() is None
    assert events == [SIGNED_OUT]


def test_admin_login_requires_admin_role(auth, mongo_db):
    auth.sign_up("a@example.com", "secret1")
    assert auth.admin_login("a@example.com", "secret1").error.startswith("Access denied")
    assert auth.get_session() is None

    make_admin(mongo_db)
    result = auth.admin_login("admin@example.com", "admin-pass")
    assert result.ok
    assert result.data["user"].role == "admin"


def test_tampered_token_is_rejected(auth):
    auth.sign_up("a@example.com", "secret1")
    other = AuthService(auth.db, secret_key="another-secret")
    token = auth.get_session().access_token
    assert other.get_user(token).error == "Invalid or expired session"


def test_unsubscribe_listener(auth):
    events = []
    unsubscribe = auth.on_auth_state_change(lambda event, session: events.append(event))
    unsubscribe()
    auth.sign_up("a@example.com", "secret1")
    assert events == []


def test_password_reset_flow(auth, mongo_db):
    auth.sign_up("a@example.com", "secret1")
    events = []
    auth.on_auth_state_change(lambda event, session: events.append(event))

    assert auth.reset_password("nobody@example.com").ok
    assert mongo_db[TABLES["password_resets"]].count_documents({}) == 0

    assert auth.reset_password("a@example.com").ok
    token = mongo_db[TABLES["password_resets"]].find_one()["token"]
    assert events == [PASSWORD_RECOVERY]

    assert auth.update_password("bogus", "newsecret").error == "Invalid or expired reset token"
    assert auth.update_password(token, "newsecret").ok
    assert auth.update_password(token, "again123").error == "Invalid or expired reset token"

    auth.sign_out()
    assert not auth.sign_in("a@example.com", "secret1").ok
    assert auth.sign_in("a@example.com", "newsecret").ok


def test_without_database(storage, monkeypatch):
    import database
    monkeypatch.setattr(database, "db", None)
    auth = AuthService(storage=storage)
    assert auth.sign_in("a@example.com", "secret1").error == "Database not configured"
    assert auth.reset_password("a@example.com").error == "Database not configured"
