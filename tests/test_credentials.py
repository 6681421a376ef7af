import pytest

from crane.providers.credentials import StaticCredentialResolver
from crane.providers.interface import ResolvedCredential


def credential(username):
    return ResolvedCredential(username=username, password="pw")


class TestStaticCredentialResolver:
    @pytest.mark.asyncio
    async def test_parent_domain_serves_subdomains(self):
        resolver = StaticCredentialResolver({"example.com": credential("parent")})
        resolved = await resolver.resolve("portal.example.com")
        assert resolved.username == "parent"

    @pytest.mark.asyncio
    async def test_most_specific_entry_wins(self):
        resolver = StaticCredentialResolver(
            {"example.com": credential("parent"), "portal.example.com": credential("child")}
        )
        assert (await resolver.resolve("portal.example.com")).username == "child"
        assert (await resolver.resolve("www.example.com")).username == "parent"

    @pytest.mark.asyncio
    async def test_case_insensitive_and_missing(self):
        resolver = StaticCredentialResolver()
        resolver.add("Example.COM", credential("ann"))
        assert (await resolver.resolve("EXAMPLE.com")).username == "ann"
        assert await resolver.resolve("other.test") is None

    @pytest.mark.asyncio
    async def test_single_label_host(self):
        resolver = StaticCredentialResolver({"localhost": credential("dev")})
        assert (await resolver.resolve("localhost")).username == "dev"


def test_field_value():
    cred = ResolvedCredential(username="u", password="p", fields={"pin": "1234"})
    assert cred.field_value("username") == "u"
    assert cred.field_value("password") == "p"
    assert cred.field_value("pin") == "1234"
    assert cred.field_value("missing") == ""
