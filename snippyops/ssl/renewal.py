"""Let's Encrypt renewal for the API certificate."""

import logging
import os
import shutil
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import click

from ..deploy.compose import ComposeRunner
from ..deploy.health import HealthChecker
from ..utils.errors import HealthCheckError, SSLError, create_error_suggestions
from ..utils.files import FileManager
from .letsencrypt import LetsEncryptManager
from .manager import SSLManager

logger = logging.getLogger(__name__)


@dataclass
class RenewalResult:
    renewed: bool
    reason: str
    expires_at: Optional[str] = None


class RenewalManager:
    """Renews the API certificate when it nears expiry and restarts the stack."""

    def __init__(
        self,
        config: Dict[str, Any],
        letsencrypt: LetsEncryptManager,
        compose: ComposeRunner,
        ssl_manager: Optional[SSLManager] = None,
        health_checker: Optional[HealthChecker] = None,
        sleep=time.sleep,
    ):
        """
        Initialize renewal manager.

        Args:
            config: Effective configuration (renewal, deploy and ssl sections are used)
            letsencrypt: certbot wrapper holding the registration email
            compose: Compose runner for the API directory
            ssl_manager: Certificate inspector
            health_checker: HTTPS health checker
            sleep: Wait function, replaced in tests
        """
        self.renewal = config["renewal"]
        self.deploy = config["deploy"]
        self.ssl = config["ssl"]
        self.letsencrypt = letsencrypt
        self.compose = compose
        self.ssl_manager = ssl_manager or SSLManager()
        self.health_checker = health_checker or HealthChecker()
        self.files = FileManager()
        self.sleep = sleep

    @property
    def domain(self) -> str:
        return self.renewal["domain"]

    @property
    def live_cert_dir(self) -> str:
        return self.letsencrypt.live_dir(self.domain)

    @property
    def api_ssl_dir(self) -> str:
        return os.path.join(self.deploy["deploy_dir"], self.ssl["output_dir"], "api")

    def _record(self, message: str) -> None:
        log_file = self.renewal["log_file"]
        if self.letsencrypt.runner.dry_run:
            click.echo(f"DRY RUN: would log to {log_file}: {message}")
            return
        self.files.append_line(log_file, f"{datetime.now().strftime('%a %b %d %H:%M:%S %Y')}: {message}")

    def check_expiry(self) -> Optional[Dict[str, Any]]:
        """Expiry information for the live certificate, None when there is none."""
        cert_path = os.path.join(self.live_cert_dir, "fullchain.pem")
        if not os.path.isfile(cert_path):
            return None
        return self.ssl_manager.check_certificate_expiration(cert_path, threshold_days=self.renewal["threshold_days"])

    def install_api_certificate(self) -> None:
        """Copy the live certificate pair into the API's ssl directory."""
        cert_src = os.path.join(self.live_cert_dir, "fullchain.pem")
        key_src = os.path.join(self.live_cert_dir, "privkey.pem")
        cert_dst = os.path.join(self.api_ssl_dir, "api.crt")
        key_dst = os.path.join(self.api_ssl_dir, "api.key")

        if self.letsencrypt.runner.dry_run:
            click.echo(f"DRY RUN: cp {cert_src} {cert_dst}")
            click.echo(f"DRY RUN: cp {key_src} {key_dst}")
            return

        try:
            os.makedirs(self.api_ssl_dir, exist_ok=True)
            shutil.copyfile(cert_src, cert_dst)
            shutil.copyfile(key_src, key_dst)
            os.chmod(cert_dst, 0o644)
            os.chmod(key_dst, 0o600)
        except OSError as e:
            raise SSLError(f"Failed to install renewed certificate into {self.api_ssl_dir}: {e}")

    def renew(self, force: bool = False) -> RenewalResult:
        """
        Renew the certificate if it expires within the threshold.

        Args:
            force: Renew even if the current certificate is still valid

        Returns:
            RenewalResult: Whether a renewal happened

        Raises:
            SSLError: If certbot fails or no email is configured
            HealthCheckError: If the API is not healthy after the restart
        """
        click.echo(f"🔄 SSL Certificate Renewal for {self.domain}")

        expiry = self.check_expiry()
        if expiry is not None:
            click.echo(f"📅 Current certificate expires: {expiry['expires_at']}")
            if not expiry["needs_renewal"] and not force:
                click.echo(f"✅ Certificate is still valid for more than {self.renewal['threshold_days']} days")
                return RenewalResult(renewed=False, reason="valid", expires_at=expiry["expires_at"])
            click.echo("⚠️ Certificate expires soon, renewing...")
        else:
            click.echo("❌ No certificate found, obtaining new one...")

        if not self.letsencrypt.email:
            raise SSLError(
                "LETSENCRYPT_EMAIL is required to renew the certificate",
                suggestions=["Export LETSENCRYPT_EMAIL or add it to the deployment env file"],
            )

        # Standalone challenge needs port 80 free
        click.echo("🛑 Stopping services for renewal...")
        self.compose.down()

        click.echo("🔄 Renewing Let's Encrypt certificate...")
        self.letsencrypt.obtain_certificate(self.domain, challenge="standalone", cert_name=None, force_renewal=True)

        click.echo("🔐 Updating API SSL certificates...")
        self.install_api_certificate()

        click.echo("🚀 Restarting services...")
        self.compose.up()

        if not self.letsencrypt.runner.dry_run:
            self.sleep(self.deploy["startup_wait"])

        click.echo("🏥 Verifying renewed certificate...")
        url = f"https://{self.domain}/api/v1/health"
        if self.letsencrypt.runner.dry_run:
            click.echo(f"DRY RUN: would verify {url}")
            return RenewalResult(renewed=True, reason="dry_run")

        health = self.health_checker.check(url)
        if not health.healthy:
            click.echo("❌ SSL renewal verification failed")
            self._record("SSL certificate renewal failed")
            raise HealthCheckError(
                f"Health check failed after renewal: {url}",
                details=health.error,
                suggestions=create_error_suggestions("service_unhealthy"),
            )

        click.echo("✅ SSL renewal successful!")
        self._record("SSL certificate renewed successfully")
        click.echo("🎉 Certificate renewal completed successfully!")

        expiry = self.check_expiry()
        return RenewalResult(renewed=True, reason="renewed", expires_at=expiry["expires_at"] if expiry else None)
