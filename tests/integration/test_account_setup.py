"""
Integration tests for the interactive account setup flow.
"""

import uuid
from unittest.mock import AsyncMock

import pytest

from tablo2plex.config import TabloConfig
from tablo2plex.security.prng import MersenneTwister
from tablo2plex.tablo.account_setup import Prompter, SetupError, create_credentials, generate_client_uuid
from tablo2plex.tablo.cloud import CloudAccountError, CloudAuthError

from tests.fixtures.fakes import FakeDevice
from tests.fixtures.sample_data import DEVICE_URL, sample_account


class ScriptedPrompter(Prompter):
    """Answers prompts from a script instead of the console."""

    def __init__(self, answers=(), choices=()):
        self.answers = list(answers)
        self.choices = list(choices)
        self.questions: list[str] = []
        self.options: list[list[str]] = []

    def ask(self, question: str, secret: bool = False) -> str:
        self.questions.append(question)
        return self.answers.pop(0)

    def choose(self, question: str, options: list[str]) -> str:
        self.questions.append(question)
        self.options.append(options)
        return self.choices.pop(0)


def make_cloud(account=None, login_side_effect=None):
    cloud = AsyncMock()
    cloud.login = AsyncMock(side_effect=login_side_effect, return_value="Bearer abc")
    cloud.get_account = AsyncMock(return_value=account if account is not None else sample_account())
    cloud.select_device = AsyncMock(return_value="lh-token-xyz")
    return cloud


def device_factory(device: FakeDevice):
    created = []

    def factory(url: str, client_uuid: str) -> FakeDevice:
        created.append((url, client_uuid))
        return device

    factory.created = created
    return factory


@pytest.mark.integration
class TestCreateCredentials:
    """Tests for create_credentials."""

    @pytest.mark.asyncio
    async def test_interactive_flow(self):
        """Prompts for login, retries a rejected password, and asks for profile and device."""
        cloud = make_cloud(login_side_effect=[CloudAuthError("Login was not accepted"), "Bearer abc"])
        prompter = ScriptedPrompter(
            answers=["me@example.com", "wrong", "me@example.com", "right"],
            choices=["Kids", "SID_5678EFGH"],
        )
        factory = device_factory(FakeDevice(tuners=4))

        record = await create_credentials(
            cloud, TabloConfig(), prompter, factory, rng=MersenneTwister(1)
        )

        assert cloud.login.await_count == 2
        cloud.login.assert_awaited_with("me@example.com", "right")
        assert prompter.options == [["Family", "Kids"], ["SID_1234ABCD", "SID_5678EFGH"]]
        cloud.select_device.assert_awaited_once_with("Bearer abc", "profile-2", "SID_5678EFGH")
        assert record.authorization == "Bearer abc"
        assert record.account_identifier == "acct-0001"
        assert record.profile.name == "Kids"
        assert record.device.server_id == "SID_5678EFGH"
        assert record.lighthouse == "lh-token-xyz"
        assert record.tuners == 4
        assert factory.created == [("http://192.168.1.51:8887", record.client_uuid)]

    @pytest.mark.asyncio
    async def test_configured_login_skips_prompts(self):
        """A configured username picks the first profile; a configured device is used directly."""
        cloud = make_cloud()
        prompter = ScriptedPrompter()
        config = TabloConfig(username="me@example.com", password="pw", device_server_id="SID_5678EFGH")

        record = await create_credentials(cloud, config, prompter, device_factory(FakeDevice()))

        assert prompter.questions == []
        assert record.profile.identifier == "profile-1"
        assert record.device.server_id == "SID_5678EFGH"

    @pytest.mark.asyncio
    async def test_configured_credentials_rejected(self):
        cloud = make_cloud(login_side_effect=CloudAuthError("Login was not accepted"))
        config = TabloConfig(username="me@example.com", password="bad")

        with pytest.raises(SetupError):
            await create_credentials(cloud, config, ScriptedPrompter(), device_factory(FakeDevice()))

        assert cloud.login.await_count == 1

    @pytest.mark.asyncio
    async def test_unknown_configured_device_falls_back_to_choice(self, caplog):
        cloud = make_cloud()
        prompter = ScriptedPrompter(choices=["SID_1234ABCD"])
        config = TabloConfig(username="me@example.com", password="pw", device_server_id="SID_NOPE")

        record = await create_credentials(cloud, config, prompter, device_factory(FakeDevice()))

        assert record.device.server_id == "SID_1234ABCD"
        assert "SID_NOPE not found" in caplog.text

    @pytest.mark.asyncio
    async def test_single_profile_and_device_need_no_choice(self):
        account = sample_account()
        account["profiles"] = account["profiles"][1:]
        account["devices"] = account["devices"][:1]
        prompter = ScriptedPrompter(answers=["me@example.com", "pw"])

        record = await create_credentials(make_cloud(account), TabloConfig(), prompter, device_factory(FakeDevice()))

        assert prompter.options == []
        assert record.profile.name == "Kids"
        assert record.device.url == DEVICE_URL

    @pytest.mark.asyncio
    async def test_missing_tuner_count_defaults_to_two(self):
        config = TabloConfig(username="u", password="p", device_server_id="SID_1234ABCD")

        record = await create_credentials(make_cloud(), config, ScriptedPrompter(), device_factory(FakeDevice(tuners=None)))

        assert record.tuners == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["identifier", "profiles", "devices"])
    async def test_incomplete_account(self, missing):
        account = sample_account()
        del account[missing]
        config = TabloConfig(username="u", password="p")

        with pytest.raises(SetupError):
            await create_credentials(make_cloud(account), config, ScriptedPrompter(), device_factory(FakeDevice()))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "section,field,message",
        [
            ("profiles", "identifier", "User profile data incomplete"),
            ("devices", "url", "User device data incomplete"),
        ],
    )
    async def test_incomplete_profile_or_device(self, section, field, message):
        account = sample_account()
        for item in account[section]:
            del item[field]
        config = TabloConfig(username="u", password="p", device_server_id="SID_1234ABCD")
        device = FakeDevice()
        factory = device_factory(device)

        with pytest.raises(SetupError, match=message):
            await create_credentials(make_cloud(account), config, ScriptedPrompter(), factory)

        assert factory.created == []

    @pytest.mark.asyncio
    async def test_account_error(self):
        cloud = make_cloud()
        cloud.get_account = AsyncMock(side_effect=CloudAccountError("Account login was not accepted"))

        with pytest.raises(SetupError):
            await create_credentials(cloud, TabloConfig(username="u", password="p"), ScriptedPrompter())

    @pytest.mark.asyncio
    async def test_missing_session_token(self):
        cloud = make_cloud()
        cloud.select_device = AsyncMock(side_effect=CloudAccountError("Account token was not found"))
        config = TabloConfig(username="u", password="p", device_server_id="SID_1234ABCD")

        with pytest.raises(SetupError):
            await create_credentials(cloud, config, ScriptedPrompter(), device_factory(FakeDevice()))

    @pytest.mark.asyncio
    async def test_unreachable_device(self):
        config = TabloConfig(username="u", password="p", device_server_id="SID_1234ABCD")

        with pytest.raises(SetupError, match="Could not reach device"):
            await create_credentials(make_cloud(), config, ScriptedPrompter(), device_factory(FakeDevice(fail=True)))


@pytest.mark.integration
class TestClientUuid:
    """Tests for generate_client_uuid."""

    def test_version_4(self):
        value = uuid.UUID(generate_client_uuid(MersenneTwister(3)))

        assert value.version == 4
        assert value.variant == uuid.RFC_4122

    def test_deterministic_for_seed(self):
        assert generate_client_uuid(MersenneTwister(3)) == generate_client_uuid(MersenneTwister(3))
        assert generate_client_uuid(MersenneTwister(3)) != generate_client_uuid(MersenneTwister(4))
