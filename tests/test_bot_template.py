"""Tests for the bot code generator."""

import json

from nitro_server.bot_template import CONFIG_PLACEHOLDER, render_bot_code
from nitro_server.models import DEFAULT_ENDPOINT, BotConfig


def _embedded_config(code: str) -> dict:
    start = code.index("const config = ") + len("const config = ")
    end = code.index("};\n", start) + 1
    return json.loads(code[start:end])


def test_embeds_settings_as_json():
    config = BotConfig(token="bot-token", prefix="?").with_channels(sales="111")

    code = render_bot_code(config)

    assert _embedded_config(code) == config.model_dump()
    assert CONFIG_PLACEHOLDER not in code
    assert "client.login(config.token);" in code


def test_keeps_non_ascii_and_quotes_json_strings():
    config = BotConfig().with_messages(welcome='Olá "pessoal"')

    code = render_bot_code(config)

    assert '"welcome": "Olá \\"pessoal\\""' in code


def test_uses_default_endpoint_and_placeholder_token():
    code = render_bot_code(BotConfig())

    assert f"endpoint: '{DEFAULT_ENDPOINT}'" in code
    assert "token: 'SEU_TOKEN_AQUI'" in code
    assert "${config.prefix}comprar <hash>" in code
