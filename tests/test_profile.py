import pytest

from models.user import AuthState
from services.order_lifecycle import ORDERS_COLLECTION, OrderLifecycleController
from services.profile import ProfileService
from utils.errors import (
    AuthRequiredError,
    IdentityError,
    ReauthenticationError,
    ValidationError,
)


@pytest.fixture
def orders(store, storefront) -> OrderLifecycleController:
    return OrderLifecycleController(store, storefront)


@pytest.fixture
def profile(identity, orders) -> ProfileService:
    return ProfileService(identity, orders)


@pytest.fixture
async def session(identity):
    return await identity.sign_up("ayesha@example.com", "secret1", "Ayesha")


async def test_sign_up_publishes_auth_state(identity):
    seen = []
    identity.subscribe(seen.append)

    session = await identity.sign_up("Bilal@Example.com", "secret1", "Bilal")

    assert session.user.email == "bilal@example.com"
    assert seen == [AuthState(logged_in=True, user_id=session.user.user_id,
                              display_name="Bilal", email="bilal@example.com")]


async def test_sign_up_rejects_duplicates_and_weak_passwords(identity, session):
    with pytest.raises(IdentityError) as excinfo:
        await identity.sign_up("ayesha@example.com", "secret1")
    assert excinfo.value.code == "auth/email-already-in-use"

    with pytest.raises(IdentityError) as excinfo:
        await identity.sign_up("new@example.com", "123")
    assert excinfo.value.code == "auth/weak-password"


async def test_sign_in_and_out(identity, session):
    signed_in = await identity.sign_in("ayesha@example.com", "secret1")
    assert (await identity.current_user(signed_in.token)).user_id == session.user.user_id

    with pytest.raises(IdentityError):
        await identity.sign_in("ayesha@example.com", "wrong-password")

    seen = []
    identity.subscribe(seen.append)
    await identity.sign_out(signed_in.token)
    assert seen[-1].logged_in is False
    with pytest.raises(AuthRequiredError):
        await identity.current_user(signed_in.token)


async def test_passwords_are_stored_as_argon2_hashes(identity, session):
    record = identity._users[session.user.user_id]
    assert record.password_hash.startswith("$argon2id$")
    assert "secret1" not in record.password_hash

    record.password_hash = "not-a-hash"
    with pytest.raises(IdentityError) as excinfo:
        await identity.sign_in("ayesha@example.com", "secret1")
    assert excinfo.value.code == "auth/invalid-credential"


async def test_update_display_name(profile, session):
    updated = await profile.update_display_name(session.token, "  Ayesha K  ")
    assert updated.display_name == "Ayesha K"

    with pytest.raises(ValidationError, match="Display name cannot be empty"):
        await profile.update_display_name(session.token, "   ")


async def test_update_email_requires_current_password(profile, identity, session):
    with pytest.raises(ValidationError, match="Current password is required"):
        await profile.update_email(session.token, "new@example.com", "")

    with pytest.raises(ReauthenticationError, match="Current password is incorrect"):
        await profile.update_email(session.token, "new@example.com", "wrong")

    updated = await profile.update_email(session.token, "new@example.com", "secret1")
    assert updated.email == "new@example.com"
    await identity.sign_in("new@example.com", "secret1")


async def test_update_email_rejects_taken_address(profile, identity, session):
    await identity.sign_up("taken@example.com", "secret1")

    with pytest.raises(IdentityError) as excinfo:
        await profile.update_email(session.token, "taken@example.com", "secret1")
    assert excinfo.value.code == "auth/email-already-in-use"


@pytest.mark.parametrize("current,new,confirm,message", [
    ("", "newpass1", "newpass1", "All password fields are required"),
    ("secret1", "short", "short", "at least 6 characters"),
    ("secret1", "newpass1", "newpass2", "do not match"),
])
async def test_update_password_rules(profile, session, current, new, confirm, message):
    with pytest.raises(ValidationError, match=message):
        await profile.update_password(session.token, current, new, confirm)


async def test_update_password(profile, identity, session):
    await profile.update_password(session.token, "secret1", "newpass1", "newpass1")

    await identity.sign_in("ayesha@example.com", "newpass1")
    with pytest.raises(IdentityError):
        await identity.sign_in("ayesha@example.com", "secret1")


async def test_reauthentication_grant_is_single_use(identity, session):
    grant = await identity.reauthenticate(session.token, "secret1")
    await identity.update_password(session.token, grant, "newpass1")

    with pytest.raises(IdentityError) as excinfo:
        await identity.update_password(session.token, grant, "newpass2")
    assert excinfo.value.code == "auth/requires-recent-login"


async def test_delete_account_removes_orders_and_user(profile, identity, orders, store, storefront,
                                                      session, make_product):
    cart = storefront.cart_for(session.user.user_id)
    cart.add(make_product("p1"))
    await orders.create_order(cart, session.user)
    seen = []
    identity.subscribe(seen.append)

    with pytest.raises(ReauthenticationError):
        await profile.delete_account(session.token, "wrong")
    await profile.delete_account(session.token, "secret1")

    assert await store.list_documents(ORDERS_COLLECTION) == []
    assert seen[-1].logged_in is False
    with pytest.raises(AuthRequiredError):
        await identity.current_user(session.token)


async def test_delete_account_continues_when_order_cleanup_fails(profile, identity, store, session):
    store.available = False

    await profile.delete_account(session.token, "secret1")

    with pytest.raises(AuthRequiredError):
        await identity.current_user(session.token)


async def test_delete_account_requires_password(profile, session):
    with pytest.raises(ValidationError):
        await profile.delete_account(session.token, "")
