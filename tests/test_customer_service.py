"""Service-level tests for the customer record store."""
import json

import pytest
from werkzeug.security import check_password_hash

from app.portal import create_app
from app.portal.db import session_scope
from app.portal.errors import BadRequest, DuplicateEmail, NotFound, Unauthorized, ValidationError
from app.portal.models import AuditEvent, Base, Customer, User
from app.portal.modules.customers import service


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("PASSWORD_HASH_METHOD", "pbkdf2:sha256:1000")

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])
    with session_scope(app) as s:
        s.add(User(email="admin@example.com", password_hash="x", is_active=True))
    with app.app_context():
        yield app


def _register(app, **overrides) -> int:
    payload = {"firstName": "A", "lastName": "B", "email": "a@b.com", "password": "secret1"}
    payload.update(overrides)
    with session_scope(app) as s:
        c = service.register_customer(s, payload)
        s.flush()
        return c.id


def _get(app, customer_id: int) -> Customer | None:
    with session_scope(app) as s:
        return s.get(Customer, customer_id)


def _admin(s) -> User:
    return s.query(User).filter(User.email == "admin@example.com").one()


def test_password_is_hashed_and_verifies(app):
    cid = _register(app)
    c = _get(app, cid)
    assert c.password_hash != "secret1"
    assert "secret1" not in c.password_hash
    assert check_password_hash(c.password_hash, "secret1")
    assert not check_password_hash(c.password_hash, "secret2")


def test_serialized_customer_has_no_password(app):
    cid = _register(app)
    data = service.serialize_customer(_get(app, cid))
    assert "password" not in data
    assert "password_hash" not in data
    assert data["email"] == "a@b.com"
    assert data["customerType"] == "Individual"
    assert data["isActive"] is True


def test_duplicate_email_is_case_insensitive(app):
    cid = _register(app, firstName="First")
    with pytest.raises(DuplicateEmail):
        _register(app, email="  A@B.COM ", firstName="Second")
    with session_scope(app) as s:
        assert s.query(Customer).count() == 1
        assert s.get(Customer, cid).first_name == "First"


def test_unique_index_settles_a_registration_race(app, monkeypatch):
    _register(app)
    # Simulate a concurrent insert that landed after our up-front lookup.
    monkeypatch.setattr(service, "find_customer_by_email", lambda s, email: None)
    with pytest.raises(DuplicateEmail):
        _register(app, firstName="Racer")
    with session_scope(app) as s:
        assert s.query(Customer).count() == 1


def test_register_validation_error_lists_every_field(app):
    with pytest.raises(ValidationError) as exc:
        _register(app, firstName="", email="nope", password="123")
    assert exc.value.messages == [
        "Please add a first name",
        "Please add a valid email",
        "Password must be at least 6 characters",
    ]


def test_partial_address_update_keeps_other_fields(app):
    address = {"street": "1 Main St", "city": "Springfield", "state": "IL", "zipCode": "62701", "country": "US"}
    cid = _register(app, address=address)
    with session_scope(app) as s:
        c = s.get(Customer, cid)
        service.update_profile(s, c, {"address": {"city": "X"}})
    c = _get(app, cid)
    assert service.serialize_customer(c)["address"] == {**address, "city": "X"}


def test_invalid_customer_type_leaves_record_unmodified(app):
    cid = _register(app, phoneNumber="555-0100")
    with session_scope(app) as s:
        c = s.get(Customer, cid)
        with pytest.raises(ValidationError) as exc:
            service.update_profile(s, c, {"customerType": "Gold", "phoneNumber": "555-9999"})
        assert exc.value.messages == ["`Gold` is not a valid customer type"]
    c = _get(app, cid)
    assert c.customer_type == "Individual"
    assert c.phone_number == "555-0100"


def test_profile_update_never_rehashes_or_sets_password(app):
    cid = _register(app)
    before = _get(app, cid).password_hash
    with session_scope(app) as s:
        c = s.get(Customer, cid)
        service.update_profile(s, c, {"firstName": "Changed", "password": "another1", "email": "x@y.com"})
    c = _get(app, cid)
    assert c.first_name == "Changed"
    assert c.password_hash == before
    assert c.email == "a@b.com"


def test_admin_update_with_password_is_refused(app):
    cid = _register(app)
    before = _get(app, cid).password_hash
    with session_scope(app) as s:
        c = s.get(Customer, cid)
        with pytest.raises(BadRequest) as exc:
            service.admin_update_customer(s, c, {"password": "hijack1", "firstName": "Z"}, user=_admin(s))
        assert exc.value.message == service.ADMIN_PASSWORD_REFUSAL
    c = _get(app, cid)
    assert c.password_hash == before
    assert c.first_name == "A"


def test_admin_update_is_all_or_nothing(app):
    cid = _register(app)
    with session_scope(app) as s:
        c = s.get(Customer, cid)
        with pytest.raises(ValidationError):
            service.admin_update_customer(s, c, {"firstName": "New", "email": "not-an-email"}, user=_admin(s))
    c = _get(app, cid)
    assert c.first_name == "A"
    assert c.email == "a@b.com"


def test_admin_update_rejects_taken_email(app):
    _register(app, email="taken@example.com")
    cid = _register(app, email="mine@example.com")
    with session_scope(app) as s:
        c = s.get(Customer, cid)
        with pytest.raises(ValidationError) as exc:
            service.admin_update_customer(s, c, {"email": "TAKEN@example.com"}, user=_admin(s))
        assert exc.value.messages == [service.EMAIL_TAKEN]


def test_admin_update_wider_field_set(app):
    cid = _register(app)
    with session_scope(app) as s:
        c = s.get(Customer, cid)
        service.admin_update_customer(
            s, c, {"email": "New@Example.com", "isActive": False, "id": 999, "createdAt": "x"}, user=_admin(s)
        )
    c = _get(app, cid)
    assert c.id == cid
    assert c.email == "new@example.com"
    assert c.is_active is False


def test_delete_then_lookup_is_not_found(app):
    cid = _register(app)
    with session_scope(app) as s:
        service.delete_customer(s, service.get_customer_or_404(s, cid), user=_admin(s))
    with session_scope(app) as s:
        with pytest.raises(NotFound):
            service.get_customer_or_404(s, cid)
        with pytest.raises(NotFound) as exc:
            service.get_customer_or_404(s, "not-an-id")
        assert exc.value.message == "Customer not found with id not-an-id"


def test_authenticate_same_error_for_unknown_and_wrong(app):
    _register(app)
    with session_scope(app) as s:
        with pytest.raises(Unauthorized) as wrong:
            service.authenticate_customer(s, "a@b.com", "wrong-password")
        with pytest.raises(Unauthorized) as unknown:
            service.authenticate_customer(s, "ghost@b.com", "wrong-password")
    assert wrong.value.message == unknown.value.message == "Invalid credentials"


def test_authenticate_refuses_inactive_customer(app):
    cid = _register(app)
    with session_scope(app) as s:
        s.get(Customer, cid).is_active = False
    with session_scope(app) as s:
        with pytest.raises(Unauthorized):
            service.authenticate_customer(s, "a@b.com", "secret1")


def test_change_password_hashes_new_value(app):
    cid = _register(app)
    with session_scope(app) as s:
        c = s.get(Customer, cid)
        with pytest.raises(Unauthorized):
            service.change_password(s, c, "wrong", "newsecret")
        with pytest.raises(ValidationError):
            service.change_password(s, c, "secret1", "short")
        service.change_password(s, c, "secret1", "newsecret")
    c = _get(app, cid)
    assert check_password_hash(c.password_hash, "newsecret")
    assert not check_password_hash(c.password_hash, "secret1")


def test_audit_trail_has_no_secrets(app):
    cid = _register(app)
    with session_scope(app) as s:
        c = s.get(Customer, cid)
        service.reset_password(s, c, "brandnew1", user=_admin(s), reason="customer called in")
    with session_scope(app) as s:
        events = s.query(AuditEvent).order_by(AuditEvent.id).all()
        assert [e.action for e in events] == ["customer.register", "customer.password_reset"]
        assert events[1].actor_type == "staff"
        assert events[1].reason == "customer called in"
        for e in events:
            meta = json.loads(e.metadata_json) if e.metadata_json else {}
            assert "brandnew1" not in json.dumps(meta)
            assert "secret1" not in json.dumps(meta)
