"""Tests for the local identity provider, OAuth helpers and AuthService."""

import httpx
import pytest

from clubconsole.auth import oauth
from clubconsole.auth.identity import LocalIdentityProvider
from clubconsole.auth.models import Role
from clubconsole.auth.resolver import RoleStore, SessionResolver
from clubconsole.auth.service import AuthService
from clubconsole.config import ConsoleConfig
from clubconsole.errors import ProviderError, Unauthorized
from conftest import ADMIN_EMAILS


@pytest.fixture
def provider(tmp_path) -> LocalIdentityProvider:
    return LocalIdentityProvider(tmp_path / "accounts")


@pytest.fixture
def service(provider, store) -> AuthService:
    return AuthService(provider, SessionResolver(RoleStore(store), ADMIN_EMAILS))


# --- LocalIdentityProvider ---


@pytest.mark.asyncio
async def test_sign_up_marks_identity_new(provider):
    identity = await provider.sign_up("meera@x.com", "secret1", "Meera")
    assert identity.is_new
    assert identity.display_name == "Meera"
    assert provider.current == identity


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "email, password",
    [("not-an-email", "secret1"), ("ok@x.com", "short")],
)
async def test_sign_up_validates_input(provider, email, password):
    with pytest.raises(ProviderError):
        await provider.sign_up(email, password, "X")


@pytest.mark.asyncio
async def test_duplicate_sign_up_rejected(provider):
    await provider.sign_up("meera@x.com", "secret1", "Meera")
    with pytest.raises(ProviderError, match="already in use"):
        await provider.sign_up("MEERA@x.com", "secret2", "Other")


@pytest.mark.asyncio
async def test_sign_in_checks_password(provider):
    created = await provider.sign_up("raj@x.com", "secret1", "Raj")
    identity = await provider.sign_in("raj@x.com", "secret1")
    assert identity.uid == created.uid
    assert not identity.is_new
    with pytest.raises(ProviderError):
        await provider.sign_in("raj@x.com", "wrong-password")


@pytest.mark.asyncio
async def test_signed_in_identity_survives_restart(tmp_path):
    first = LocalIdentityProvider(tmp_path / "accounts")
    created = await first.sign_up("anu@x.com", "secret1", "Anu")
    second = LocalIdentityProvider(tmp_path / "accounts")
    assert second.current.uid == created.uid
    await second.sign_out()
    assert LocalIdentityProvider(tmp_path / "accounts").current is None


@pytest.mark.asyncio
async def test_server_mode_does_not_persist_sign_in(tmp_path):
    server = LocalIdentityProvider(tmp_path / "accounts", remember=False)
    await server.sign_up("anu@x.com", "secret1", "Anu")
    assert not (tmp_path / "accounts" / "current.json").exists()


@pytest.mark.asyncio
async def test_tokens_resolve_and_revoke(provider):
    identity = await provider.sign_up("dev@x.com", "secret1", "Dev")
    token = provider.issue_token(identity.uid)
    assert provider.identity_for_token(token).uid == identity.uid
    assert provider.revoke_token(token)
    assert provider.identity_for_token(token) is None
    assert not provider.revoke_token(token)


@pytest.mark.asyncio
async def test_expired_token_is_rejected(provider):
    identity = await provider.sign_up("dev@x.com", "secret1", "Dev")
    token = provider.issue_token(identity.uid, expires_in_hours=-1)
    assert provider.identity_for_token(token) is None


@pytest.mark.asyncio
async def test_listener_called_on_registration_and_changes(provider):
    seen = []

    async def listener(identity):
        seen.append(identity.email if identity else None)

    unsubscribe = await provider.on_identity_changed(listener)
    await provider.sign_up("a@x.com", "secret1", "A")
    await provider.sign_out()
    unsubscribe()
    await provider.sign_in("a@x.com", "secret1")
    assert seen == [None, "a@x.com", None]


@pytest.mark.asyncio
async def test_password_reset_requires_known_email(provider):
    await provider.sign_up("a@x.com", "secret1", "A")
    await provider.send_password_reset("a@x.com")
    with pytest.raises(ProviderError):
        await provider.send_password_reset("nobody@x.com")


@pytest.mark.asyncio
async def test_oauth_demo_mode_creates_then_reuses_account(provider):
    first = await provider.sign_in_with_oauth("google")
    second = await provider.sign_in_with_oauth("google")
    assert first.is_new
    assert not second.is_new
    assert first.uid == second.uid
    assert first.email == oauth.demo_profile()["email"]


@pytest.mark.asyncio
async def test_oauth_rejects_unknown_provider(provider):
    with pytest.raises(ProviderError):
        await provider.sign_in_with_oauth("myspace")


# --- OAuth helpers ---


def test_demo_mode_without_credentials():
    config = ConsoleConfig(home="/tmp/cc")
    assert oauth.is_demo_mode(config)
    assert oauth.get_google_auth_url(config, "state") == ""


def test_auth_url_includes_client_and_state():
    config = ConsoleConfig(home="/tmp/cc", google_client_id="cid", google_client_secret="sec")
    url = oauth.get_google_auth_url(config, "xyz", "http://localhost/cb")
    assert url.startswith(oauth.GOOGLE_AUTH_URL)
    assert "client_id=cid" in url
    assert "state=xyz" in url


@pytest.mark.asyncio
async def test_exchange_code_reads_profile():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url == httpx.URL(oauth.GOOGLE_TOKEN_URL):
            return httpx.Response(200, json={"access_token": "tok"})
        assert request.headers["Authorization"] == "Bearer tok"
        return httpx.Response(200, json={"email": "g@x.com", "name": "G", "sub": 42})

    config = ConsoleConfig(home="/tmp/cc", google_client_id="cid", google_client_secret="sec")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        profile = await oauth.exchange_google_code(config, "code", client=client)
    assert profile["email"] == "g@x.com"
    assert profile["provider_id"] == "42"


@pytest.mark.asyncio
async def test_exchange_code_without_token_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "invalid_grant"})

    config = ConsoleConfig(home="/tmp/cc", google_client_id="cid", google_client_secret="sec")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ProviderError, match="invalid_grant"):
            await oauth.exchange_google_code(config, "bad", client=client)


@pytest.mark.asyncio
async def test_exchange_code_with_non_json_body_raises_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    config = ConsoleConfig(home="/tmp/cc", google_client_id="cid", google_client_secret="sec")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ProviderError, match="request failed"):
            await oauth.exchange_google_code(config, "code", client=client)


# --- AuthService ---


@pytest.mark.asyncio
async def test_sign_up_seeds_role_document_and_resolves(service, store):
    await service.start()
    assert service.session.ready
    assert service.session.identity is None

    identity = await service.sign_up("meera@x.com", "secret1", "Meera")

    doc = await store.get("users", identity.uid)
    assert doc["role"] == "user"
    assert doc["displayName"] == "Meera"
    assert service.session.uid == identity.uid
    assert service.session.role == Role.user
    assert service.session.ready


@pytest.mark.asyncio
async def test_allowlisted_sign_up_is_admin(service):
    await service.start()
    await service.sign_up("admin@club.test", "secret1", "Boss")
    assert service.session.is_admin


@pytest.mark.asyncio
async def test_failed_sign_in_records_last_error(service):
    await service.start()
    with pytest.raises(ProviderError):
        await service.sign_in("ghost@x.com", "secret1")
    assert service.last_error == "No account matches that email and password."


@pytest.mark.asyncio
async def test_last_error_cleared_on_success(service):
    await service.start()
    with pytest.raises(ProviderError):
        await service.sign_up("bad", "secret1", "X")
    await service.sign_up("good@x.com", "secret1", "X")
    assert service.last_error == ""


@pytest.mark.asyncio
async def test_sign_out_resets_session(service):
    await service.start()
    await service.sign_up("admin@club.test", "secret1", "Boss")
    await service.sign_out()
    assert service.session.identity is None
    assert service.session.role == Role.user


@pytest.mark.asyncio
async def test_update_profile_requires_sign_in(service):
    await service.start()
    with pytest.raises(ProviderError):
        await service.update_profile(display_name="Nobody")


@pytest.mark.asyncio
async def test_update_profile_changes_display_name(service):
    await service.start()
    await service.sign_up("a@x.com", "secret1", "A")
    identity = await service.update_profile(display_name="Asha")
    assert identity.display_name == "Asha"


@pytest.mark.asyncio
async def test_non_admin_role_update_is_unauthorized(service, store):
    await store.set("users", "target", {"email": "t@x.com", "role": "user"})
    await service.start()
    await service.sign_up("a@x.com", "secret1", "A")
    with pytest.raises(Unauthorized):
        await service.update_user_role("target", Role.admin)
    assert service.last_error


@pytest.mark.asyncio
async def test_stop_unsubscribes_resolver(service):
    await service.start()
    service.stop()
    await service.sign_up("admin@club.test", "secret1", "Boss")
    assert service.session.identity is None
