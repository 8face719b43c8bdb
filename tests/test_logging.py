"""Tests for log redaction."""

from cbnotify.utils.logging import _filter_sensitive


class TestFilterSensitive:
    def test_redacts_discord_webhook(self):
        event = {"event": "x", "url": "https://discord.com/api/webhooks/123/abcDEF-token"}
        out = _filter_sensitive(None, "info", event)
        assert out["url"] == "https://discord.com/api/webhooks/***REDACTED***"

    def test_redacts_legacy_domain_inside_text(self):
        event = {"error": "POST https://discordapp.com/api/webhooks/1/tok failed"}
        out = _filter_sensitive(None, "info", event)
        assert out["error"] == "POST https://discordapp.com/api/webhooks/***REDACTED*** failed"

    def test_redacts_token_assignment(self):
        out = _filter_sensitive(None, "info", {"msg": "token=abc123"})
        assert out["msg"] == "token=***REDACTED***"

    def test_leaves_other_values(self):
        event = {"event": "sending_discord_webhook", "status": "SUCCESS", "count": 2}
        assert _filter_sensitive(None, "info", dict(event)) == event
