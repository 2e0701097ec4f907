import pytest
from sqlalchemy.exc import OperationalError

from afriroots.accounts import (
    AccountStore,
    AuthService,
    DuplicateAccount,
    InvalidCredentials,
    PersistenceError,
)
from afriroots.models.user import Role, User


def test_register_returns_token_and_persists_one_account(service, store):
    token = service.register(email="a@x.com", password="secret1", role="tourist")
    assert token
    assert store.count("a@x.com") == 1

    account = store.get_by_email("a@x.com")
    assert account.role == Role.VISITOR.value
    assert account.password_hash != "secret1"
    assert service.issuer.verify(token) == account.id


def test_register_same_email_twice_is_rejected(service, store):
    service.register(email="a@x.com", password="secret1", role="tourist")
    with pytest.raises(DuplicateAccount) as excinfo:
        service.register(email="a@x.com", password="other-pw", role="creator")
    assert excinfo.value.message == "User already exists"
    assert store.count("a@x.com") == 1
    assert store.count() == 1


def test_email_lookup_is_case_insensitive(service, store):
    service.register(email="A@X.com", password="secret1")
    with pytest.raises(DuplicateAccount):
        service.register(email="a@x.COM", password="secret1")
    assert store.count() == 1


def test_duplicate_phone_is_rejected(service, store):
    service.register(email="a@x.com", password="secret1", phone="+254700000000")
    with pytest.raises(DuplicateAccount):
        service.register(email="b@x.com", password="secret1", phone="+254700000000")
    assert store.count() == 1


def test_store_constraint_closes_check_then_insert_race(service, store, monkeypatch):
    service.register(email="a@x.com", password="secret1")
    # simulate a concurrent request that passed the lookup before our insert
    monkeypatch.setattr(store, "get_by_email", lambda email: None)
    with pytest.raises(DuplicateAccount):
        service.register(email="a@x.com", password="secret1")
    monkeypatch.undo()
    assert store.count("a@x.com") == 1


def test_unknown_email_and_wrong_password_are_indistinguishable(service):
    service.register(email="a@x.com", password="secret1")

    with pytest.raises(InvalidCredentials) as wrong_password:
        service.login("a@x.com", "wrong")
    with pytest.raises(InvalidCredentials) as unknown_email:
        service.login("nobody@x.com", "secret1")

    assert type(wrong_password.value) is type(unknown_email.value)
    assert wrong_password.value.message == unknown_email.value.message == "Invalid Credentials"
    assert str(wrong_password.value) == str(unknown_email.value)


def test_login_token_resolves_to_registered_account(service, store):
    registered = service.register(email="a@x.com", password="secret1", role="creator")
    token = service.login("A@x.com", "secret1")
    assert service.issuer.verify(token) == service.issuer.verify(registered)
    assert service.issuer.verify(token) == store.get_by_email("a@x.com").id


def test_unknown_role_is_rejected(service, store):
    with pytest.raises(ValueError):
        service.register(email="a@x.com", password="secret1", role="admin")
    assert store.count() == 0


class _BrokenSession:
    def query(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    def add(self, obj):
        pass

    def commit(self):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    def rollback(self):
        pass

    def close(self):
        pass


def test_store_failures_surface_as_persistence_error(hasher, issuer):
    service = AuthService(AccountStore(_BrokenSession), hasher, issuer)
    with pytest.raises(PersistenceError) as excinfo:
        service.login("a@x.com", "secret1")
    assert excinfo.value.message == "Server error"

    with pytest.raises(PersistenceError):
        AccountStore(_BrokenSession).add(User(email="a@x.com", password_hash="x"))


def test_store_count_failure_surfaces_as_persistence_error():
    with pytest.raises(PersistenceError):
        AccountStore(_BrokenSession).count()


def test_both_login_failures_run_a_bcrypt_check(service, monkeypatch):
    service.register(email="a@x.com", password="secret1")
    checked = []
    original_verify = service.hasher.verify

    def recording_verify(plaintext, digest):
        checked.append(digest)
        return original_verify(plaintext, digest)

    monkeypatch.setattr(service.hasher, "verify", recording_verify)

    with pytest.raises(InvalidCredentials):
        service.login("a@x.com", "wrong-pw")
    with pytest.raises(InvalidCredentials):
        service.login("nobody@x.com", "wrong-pw")

    assert len(checked) == 2
    assert checked[1] == service.hasher.dummy_digest()
    assert all(digest.startswith("$2b$04$") for digest in checked)


def test_duplicate_insert_warning_omits_email(service, store, monkeypatch, caplog):
    service.register(email="a@x.com", password="secret1")
    monkeypatch.setattr(store, "get_by_email", lambda email: None)
    with caplog.at_level("WARNING", logger="afriroots.accounts"):
        with pytest.raises(DuplicateAccount):
            service.register(email="a@x.com", password="secret1")
    assert "duplicate account rejected by store" in caplog.text
    assert "a@x.com" not in caplog.text
