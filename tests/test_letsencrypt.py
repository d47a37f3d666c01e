"""Tests for certbot integration."""

import pytest

from snippyops.ssl.letsencrypt import LetsEncryptManager
from snippyops.utils.errors import SSLError


class TestBuildObtainCommand:
    def test_webroot(self, fake_runner):
        manager = LetsEncryptManager("ops@example.com", runner=fake_runner)

        cmd = manager.build_obtain_command("api.example.com", webroot_path="/var/www/certbot")

        assert cmd == [
            "certbot", "certonly",
            "--webroot", "-w", "/var/www/certbot",
            "-d", "api.example.com",
            "--email", "ops@example.com",
            "--agree-tos", "--no-eff-email", "--non-interactive",
            "--cert-name", "cert",
        ]

    def test_webroot_staging(self, fake_runner):
        manager = LetsEncryptManager("ops@example.com", staging=True, runner=fake_runner)

        cmd = manager.build_obtain_command("api.example.com", webroot_path="/var/www/certbot")

        assert cmd[-1] == "--staging"

    def test_standalone_forced_without_cert_name(self, fake_runner):
        manager = LetsEncryptManager("ops@example.com", runner=fake_runner)

        cmd = manager.build_obtain_command("api.example.com", challenge="standalone", cert_name=None, force_renewal=True)

        assert cmd == [
            "certbot", "certonly", "--standalone", "--non-interactive", "--force-renewal",
            "--agree-tos", "--email", "ops@example.com", "-d", "api.example.com",
        ]

    def test_custom_config_dir(self, fake_runner, temp_directory):
        manager = LetsEncryptManager("ops@example.com", runner=fake_runner, config_dir=temp_directory)

        cmd = manager.build_obtain_command("api.example.com", webroot_path="/var/www/certbot")

        assert cmd[:3] == ["certbot", "--config-dir", temp_directory]
        assert manager.live_dir() == f"{temp_directory}/live/cert"

    def test_missing_email(self, fake_runner):
        manager = LetsEncryptManager("", runner=fake_runner)

        with pytest.raises(SSLError, match="email address is required"):
            manager.build_obtain_command("api.example.com", webroot_path="/var/www/certbot")

    def test_webroot_path_required(self, fake_runner):
        manager = LetsEncryptManager("ops@example.com", runner=fake_runner)

        with pytest.raises(SSLError, match="Webroot path required"):
            manager.build_obtain_command("api.example.com")

    def test_unsupported_challenge(self, fake_runner):
        manager = LetsEncryptManager("ops@example.com", runner=fake_runner)

        with pytest.raises(SSLError, match="Unsupported challenge"):
            manager.build_obtain_command("api.example.com", challenge="dns")


class TestObtainCertificate:
    def test_success(self, fake_runner):
        manager = LetsEncryptManager("ops@example.com", runner=fake_runner)

        result = manager.obtain_certificate("api.example.com", webroot_path="/var/www/certbot")

        assert fake_runner.ran("certbot", "certonly", "--webroot")
        assert result["cert_path"] == "/etc/letsencrypt/live/cert/fullchain.pem"
        assert result["key_path"] == "/etc/letsencrypt/live/cert/privkey.pem"
        assert result["staging"] is False

    def test_lineage_defaults_to_domain(self, fake_runner):
        manager = LetsEncryptManager("ops@example.com", runner=fake_runner)

        result = manager.obtain_certificate("api.example.com", challenge="standalone", cert_name=None)

        assert result["cert_path"] == "/etc/letsencrypt/live/api.example.com/fullchain.pem"

    def test_certbot_missing(self, fake_runner):
        fake_runner.available = set()
        manager = LetsEncryptManager("ops@example.com", runner=fake_runner)

        with pytest.raises(SSLError, match="certbot is not installed") as excinfo:
            manager.obtain_certificate("api.example.com", webroot_path="/var/www/certbot")

        assert any("certbot" in suggestion for suggestion in excinfo.value.suggestions)
        assert fake_runner.commands == []

    def test_certbot_failure(self, fake_runner):
        fake_runner.respond(lambda cmd: cmd[0] == "certbot", returncode=1, stderr="Too many certificates already issued")
        manager = LetsEncryptManager("ops@example.com", runner=fake_runner)

        with pytest.raises(SSLError, match="Certbot failed for api.example.com") as excinfo:
            manager.obtain_certificate("api.example.com", webroot_path="/var/www/certbot")

        assert "Too many certificates" in excinfo.value.details

