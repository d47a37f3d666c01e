"""Initial certificate provisioning for the API proxy."""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Optional, Union

import click

from ..config.env import is_truthy
from .letsencrypt import DEFAULT_CERT_NAME, LetsEncryptManager
from .manager import SSLManager

logger = logging.getLogger(__name__)

GREEN = "green"
YELLOW = "yellow"

ACTION_EXISTING = "existing"
ACTION_SELF_SIGNED = "self_signed"
ACTION_FALLBACK = "self_signed_fallback"
ACTION_LETSENCRYPT = "letsencrypt"


def _log(message: str) -> None:
    click.echo(click.style("[SSL]", fg=GREEN) + f" {message}")


def _warn(message: str) -> None:
    click.echo(click.style("[SSL]", fg=YELLOW, bold=True) + f" {message}")


@dataclass
class ProvisionResult:
    """What provisioning did and where the files are."""

    action: str
    cert_path: str
    key_path: str
    domain: str


class CertificateProvisioner:
    """Creates the proxy certificate: self-signed locally, Let's Encrypt in production."""

    def __init__(
        self,
        cert_dir: str,
        ssl_manager: Optional[SSLManager] = None,
        letsencrypt_factory: Optional[Callable[[str, bool, str], LetsEncryptManager]] = None,
        webroot: str = "/var/www/certbot",
        organization: str = "Snippy",
    ):
        """
        Initialize provisioner.

        Args:
            cert_dir: Directory that must end up holding fullchain.pem and privkey.pem
            ssl_manager: Self-signed certificate generator
            letsencrypt_factory: Builds a LetsEncryptManager from (email, staging, config_dir)
            webroot: Webroot served for the HTTP-01 challenge
            organization: Organization in self-signed subjects
        """
        self.cert_dir = cert_dir
        self.ssl_manager = ssl_manager or SSLManager()
        self.letsencrypt_factory = letsencrypt_factory or (
            lambda email, staging, config_dir: LetsEncryptManager(email=email, staging=staging, config_dir=config_dir)
        )
        self.webroot = webroot
        self.organization = organization

    @property
    def cert_name(self) -> str:
        """certbot lineage name: cert_dir is <config_dir>/live/<cert_name>."""
        return os.path.basename(os.path.abspath(self.cert_dir)) or DEFAULT_CERT_NAME

    @property
    def letsencrypt_dir(self) -> str:
        return os.path.dirname(os.path.dirname(os.path.abspath(self.cert_dir)))

    @property
    def cert_path(self) -> str:
        return os.path.join(self.cert_dir, "fullchain.pem")

    @property
    def key_path(self) -> str:
        return os.path.join(self.cert_dir, "privkey.pem")

    def certificates_exist(self) -> bool:
        """Both halves of the certificate pair are present."""
        return os.path.isfile(self.cert_path) and os.path.isfile(self.key_path)

    def initialize(
        self,
        domain: Optional[str] = None,
        email: Optional[str] = None,
        staging: Union[str, bool, None] = False,
    ) -> ProvisionResult:
        """
        Make sure a certificate exists in cert_dir.

        Args:
            domain: Public domain; empty or localhost means local development
            email: Let's Encrypt registration email
            staging: Use the staging CA ('true' or True)

        Returns:
            ProvisionResult: The action taken and the resulting file paths
        """
        domain = (domain or "").strip()
        email = (email or "").strip()

        os.makedirs(self.cert_dir, exist_ok=True)

        if self.certificates_exist():
            _log("Certificates already exist")
            return ProvisionResult(ACTION_EXISTING, self.cert_path, self.key_path, domain or "localhost")

        if not domain or domain == "localhost":
            _log("Creating self-signed certificate for local development...")
            self.ssl_manager.generate_self_signed_certificate(
                "localhost", self.cert_dir, organization=self.organization
            )
            _log("Self-signed certificate created")
            return ProvisionResult(ACTION_SELF_SIGNED, self.cert_path, self.key_path, "localhost")

        if not email:
            _warn("CERTBOT_EMAIL required for Let's Encrypt")
            _warn("Creating self-signed cert as fallback...")
            self.ssl_manager.generate_self_signed_certificate(
                domain, self.cert_dir, organization=self.organization
            )
            return ProvisionResult(ACTION_FALLBACK, self.cert_path, self.key_path, domain)

        use_staging = is_truthy(staging)
        _log(f"Requesting Let's Encrypt certificate for {domain}...")
        if use_staging:
            _warn("Using Let's Encrypt staging server")

        manager = self.letsencrypt_factory(email, use_staging, self.letsencrypt_dir)
        result = manager.obtain_certificate(
            domain,
            challenge="webroot",
            webroot_path=self.webroot,
            cert_name=self.cert_name,
        )

        _log("Let's Encrypt certificate obtained!")
        logger.info(f"Let's Encrypt certificate stored at {result['cert_path']}")
        return ProvisionResult(ACTION_LETSENCRYPT, result["cert_path"], result["key_path"], domain)
