"""SSL certificate management for Snippy deployments."""

from .letsencrypt import LetsEncryptManager
from .manager import SSLManager
from .provisioner import CertificateProvisioner, ProvisionResult
from .renewal import RenewalManager, RenewalResult

__all__ = [
    "CertificateProvisioner",
    "LetsEncryptManager",
    "ProvisionResult",
    "RenewalManager",
    "RenewalResult",
    "SSLManager",
]
