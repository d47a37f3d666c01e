"""Let's Encrypt integration through certbot."""

import logging
import os
from typing import Any, Dict, List, Optional

from ..utils.errors import CommandError, SSLError, create_error_suggestions
from ..utils.shell import CommandRunner

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = "/etc/letsencrypt"
DEFAULT_CERT_NAME = "cert"


class LetsEncryptManager:
    """Requests and renews Let's Encrypt certificates via certbot."""

    def __init__(
        self,
        email: Optional[str],
        staging: bool = False,
        runner: Optional[CommandRunner] = None,
        config_dir: str = DEFAULT_CONFIG_DIR,
        verbose: bool = False,
    ):
        """
        Initialize Let's Encrypt manager.

        Args:
            email: Email address for Let's Encrypt registration
            staging: Use Let's Encrypt staging environment
            runner: Command runner used for certbot
            config_dir: certbot configuration directory
            verbose: Enable verbose output
        """
        self.email = email
        self.staging = staging
        self.runner = runner or CommandRunner(verbose=verbose)
        self.config_dir = config_dir
        self.verbose = verbose

    def live_dir(self, cert_name: str = DEFAULT_CERT_NAME) -> str:
        """Directory where certbot keeps the current files for a lineage."""
        return os.path.join(self.config_dir, "live", cert_name)

    def check_certbot_available(self) -> bool:
        """Check if certbot is available."""
        return self.runner.dry_run or self.runner.which("certbot")

    def _base_command(self) -> List[str]:
        cmd = ["certbot"]
        if os.path.normpath(self.config_dir) != DEFAULT_CONFIG_DIR:
            cmd.extend(["--config-dir", self.config_dir])
        return cmd

    def build_obtain_command(
        self,
        domain: str,
        challenge: str = "webroot",
        webroot_path: Optional[str] = None,
        cert_name: Optional[str] = DEFAULT_CERT_NAME,
        force_renewal: bool = False,
    ) -> List[str]:
        """
        Build the certbot certonly invocation.

        Args:
            domain: Domain name for certificate
            challenge: Challenge method (webroot, standalone)
            webroot_path: Webroot path for webroot challenge
            cert_name: Lineage name, None for certbot's default (the domain)
            force_renewal: Pass --force-renewal

        Returns:
            List[str]: certbot arguments
        """
        if not self.email:
            raise SSLError(
                f"An email address is required to request a certificate for {domain}",
                suggestions=["Set CERTBOT_EMAIL (or LETSENCRYPT_EMAIL for renewal)"],
            )

        cmd = self._base_command() + ["certonly"]

        if challenge == "webroot":
            if not webroot_path:
                raise SSLError("Webroot path required for webroot challenge")
            cmd.extend(["--webroot", "-w", webroot_path])
            cmd.extend(["-d", domain, "--email", self.email])
            cmd.extend(["--agree-tos", "--no-eff-email", "--non-interactive"])
        elif challenge == "standalone":
            cmd.extend(["--standalone", "--non-interactive"])
            if force_renewal:
                cmd.append("--force-renewal")
            cmd.extend(["--agree-tos", "--email", self.email, "-d", domain])
        else:
            raise SSLError(f"Unsupported challenge method: {challenge}")

        if force_renewal and challenge != "standalone":
            cmd.append("--force-renewal")

        if cert_name:
            cmd.extend(["--cert-name", cert_name])

        if self.staging:
            cmd.append("--staging")

        return cmd

    def obtain_certificate(
        self,
        domain: str,
        challenge: str = "webroot",
        webroot_path: Optional[str] = None,
        cert_name: Optional[str] = DEFAULT_CERT_NAME,
        force_renewal: bool = False,
    ) -> Dict[str, Any]:
        """
        Obtain an SSL certificate from Let's Encrypt.

        Args:
            domain: Domain name for certificate
            challenge: Challenge method (webroot, standalone)
            webroot_path: Webroot path for webroot challenge
            cert_name: Lineage name, None for certbot's default (the domain)
            force_renewal: Replace an existing certificate even if not due

        Returns:
            Dict[str, Any]: Certificate paths

        Raises:
            SSLError: If certbot is missing or fails
        """
        cmd = self.build_obtain_command(
            domain,
            challenge=challenge,
            webroot_path=webroot_path,
            cert_name=cert_name,
            force_renewal=force_renewal,
        )

        if not self.check_certbot_available():
            raise SSLError(
                "certbot is not installed",
                suggestions=create_error_suggestions("certbot_missing"),
            )

        logger.info(f"Requesting Let's Encrypt certificate for {domain} (staging={self.staging})")

        try:
            self.runner.run(cmd)
        except CommandError as e:
            raise SSLError(f"Certbot failed for {domain}", details=e.details)

        live = self.live_dir(cert_name or domain)
        return {
            "domain": domain,
            "cert_path": os.path.join(live, "fullchain.pem"),
            "key_path": os.path.join(live, "privkey.pem"),
            "challenge": challenge,
            "staging": self.staging,
        }
