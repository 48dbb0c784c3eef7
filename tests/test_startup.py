"""Startup config redaction."""

from paygate.common.config import Settings
from paygate.common.startup import redacted_settings


def test_secret_fields_are_masked():
    settings = Settings(_env_file=None, stripe_secret_key="sk_live_real", stripe_webhook_secret="", port=4000)

    view = redacted_settings(settings)

    assert view["stripe_secret_key"] == "<redacted>"
    assert view["stripe_webhook_secret"] == "<unset>"
    assert view["stripe_publishable_key"] in ("<redacted>", "<unset>")
    assert view["port"] == 4000
    assert "sk_live_real" not in str(view)
