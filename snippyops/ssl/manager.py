"""Self-signed certificate generation and inspection."""

import ipaddress
import logging
import os
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, ExtensionOID, NameOID

from ..utils.errors import SSLError
from ..utils.files import FileManager

logger = logging.getLogger(__name__)

EXPIRY_WARNING_DAYS = 30

PLACEHOLDER_SUBJECT = {
    "country": "US",
    "state": "State",
    "locality": "City",
    "organization": "Organization",
}

API_OPENSSL_CONF = """[req]
distinguished_name = req_distinguished_name
req_extensions = v3_req
prompt = no

[req_distinguished_name]
C=US
ST=State
L=City
O=Organization
CN={domain}

[v3_req]
keyUsage = keyEncipherment, dataEncipherment
extendedKeyUsage = serverAuth
subjectAltName = @alt_names

[alt_names]
DNS.1 = {domain}
DNS.2 = www.{domain}
DNS.3 = localhost
IP.1 = 127.0.0.1
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _placeholder_name(common_name: str) -> x509.Name:
    return x509.Name(
        [
            x509.NameAttribute(NameOID.COUNTRY_NAME, PLACEHOLDER_SUBJECT["country"]),
            x509.NameAttribute(NameOID.STATE_OR_PROVINCE_NAME, PLACEHOLDER_SUBJECT["state"]),
            x509.NameAttribute(NameOID.LOCALITY_NAME, PLACEHOLDER_SUBJECT["locality"]),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, PLACEHOLDER_SUBJECT["organization"]),
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        ]
    )


def hostname_matches(pattern: str, hostname: str) -> bool:
    """Match a certificate name against a hostname; "*." covers exactly one leftmost label."""
    pattern = pattern.lower().rstrip(".")
    hostname = hostname.lower().rstrip(".")
    if not pattern.startswith("*."):
        return pattern == hostname
    if "." not in hostname:
        return False
    label, parent = hostname.split(".", 1)
    return bool(label) and parent == pattern[2:]


def api_san_entries(domain: str) -> List[x509.GeneralName]:
    """Subject alternative names for the API certificate, duplicates collapsed."""
    dns_names: List[str] = []
    for name in (domain, f"www.{domain}", "localhost"):
        if name not in dns_names:
            dns_names.append(name)

    entries: List[x509.GeneralName] = [x509.DNSName(name) for name in dns_names]
    entries.append(x509.IPAddress(ipaddress.ip_address("127.0.0.1")))
    return entries


class SSLManager:
    """Generates and inspects locally issued certificates."""

    def __init__(self, verbose: bool = False):
        """Initialize SSL manager."""
        self.verbose = verbose
        self.files = FileManager(verbose=False)

    def _new_key(self, key_size: int) -> rsa.RSAPrivateKey:
        return rsa.generate_private_key(public_exponent=65537, key_size=key_size)

    def _key_bytes(self, key: rsa.RSAPrivateKey, traditional: bool = False) -> bytes:
        # genrsa writes PKCS#1 ("BEGIN RSA PRIVATE KEY"); req -nodes writes PKCS#8
        key_format = serialization.PrivateFormat.TraditionalOpenSSL if traditional else serialization.PrivateFormat.PKCS8
        return key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=key_format,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def _self_sign_csr(
        self,
        csr: x509.CertificateSigningRequest,
        key: rsa.RSAPrivateKey,
        validity_days: int,
        copy_extensions: bool,
    ) -> x509.Certificate:
        now = _utcnow()
        builder = (
            x509.CertificateBuilder()
            .subject_name(csr.subject)
            .issuer_name(csr.subject)
            .public_key(csr.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + timedelta(days=validity_days))
        )
        if copy_extensions:
            for extension in csr.extensions:
                builder = builder.add_extension(extension.value, critical=extension.critical)
        return builder.sign(key, hashes.SHA256())

    def generate_self_signed_certificate(
        self,
        common_name: str,
        output_dir: str,
        organization: str = "Snippy",
        key_size: int = 2048,
        validity_days: int = 365,
    ) -> Dict[str, str]:
        """
        Generate a self-signed certificate in Let's Encrypt file layout.

        Writes privkey.pem and fullchain.pem with subject
        CN=<common_name>, O=<organization>, C=US.

        Args:
            common_name: Certificate common name
            output_dir: Directory receiving the files
            organization: Organization attribute of the subject
            key_size: RSA key size
            validity_days: Certificate validity period in days

        Returns:
            Dict[str, str]: Paths to generated files
        """
        try:
            output_path = Path(output_dir)
            output_path.mkdir(parents=True, exist_ok=True)

            private_key = self._new_key(key_size)
            name = x509.Name(
                [
                    x509.NameAttribute(NameOID.COMMON_NAME, common_name),
                    x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization),
                    x509.NameAttribute(NameOID.COUNTRY_NAME, "US"),
                ]
            )
            now = _utcnow()
            cert = (
                x509.CertificateBuilder()
                .subject_name(name)
                .issuer_name(name)
                .public_key(private_key.public_key())
                .serial_number(x509.random_serial_number())
                .not_valid_before(now)
                .not_valid_after(now + timedelta(days=validity_days))
                .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
                .sign(private_key, hashes.SHA256())
            )

            key_path = output_path / "privkey.pem"
            cert_path = output_path / "fullchain.pem"
            self.files.write_secure(str(key_path), self._key_bytes(private_key), 0o600)
            self.files.write_secure(str(cert_path), cert.public_bytes(serialization.Encoding.PEM), 0o644)

            logger.info(f"Self-signed certificate for {common_name} written to {output_path}")

            return {
                "cert_path": str(cert_path),
                "key_path": str(key_path),
                "common_name": common_name,
                "type": "self-signed",
                "validity_days": validity_days,
            }

        except OSError as e:
            raise SSLError(f"Failed to generate self-signed certificate: {e}")

    def generate_api_certificate(
        self,
        domain: Optional[str],
        output_dir: str = "ssl/api",
        key_size: int = 2048,
        validity_days: int = 365,
    ) -> Dict[str, Any]:
        """
        Generate the API server key and self-signed certificate.

        Args:
            domain: Server domain; empty means localhost
            output_dir: Directory receiving api.key, api.conf, api.csr, api.crt
            key_size: RSA key size
            validity_days: Certificate validity period in days

        Returns:
            Dict[str, Any]: Paths to generated files and the domain used
        """
        domain = (domain or "").strip() or "localhost"

        try:
            output_path = Path(output_dir)
            output_path.mkdir(parents=True, exist_ok=True)

            key_path = output_path / "api.key"
            conf_path = output_path / "api.conf"
            csr_path = output_path / "api.csr"
            cert_path = output_path / "api.crt"

            private_key = self._new_key(key_size)
            self.files.write_secure(str(key_path), self._key_bytes(private_key, traditional=True), 0o600)

            with open(conf_path, "w", encoding="utf-8") as f:
                f.write(API_OPENSSL_CONF.format(domain=domain))

            csr = (
                x509.CertificateSigningRequestBuilder()
                .subject_name(_placeholder_name(domain))
                .add_extension(
                    x509.KeyUsage(
                        digital_signature=False,
                        content_commitment=False,
                        key_encipherment=True,
                        data_encipherment=True,
                        key_agreement=False,
                        key_cert_sign=False,
                        crl_sign=False,
                        encipher_only=False,
                        decipher_only=False,
                    ),
                    critical=False,
                )
                .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
                .add_extension(x509.SubjectAlternativeName(api_san_entries(domain)), critical=False)
                .sign(private_key, hashes.SHA256())
            )
            with open(csr_path, "wb") as f:
                f.write(csr.public_bytes(serialization.Encoding.PEM))

            cert = self._self_sign_csr(csr, private_key, validity_days, copy_extensions=True)
            self.files.write_secure(str(cert_path), cert.public_bytes(serialization.Encoding.PEM), 0o644)

            logger.info(f"API certificate for {domain} written to {output_path}")

            return {
                "key_path": str(key_path),
                "cert_path": str(cert_path),
                "csr_path": str(csr_path),
                "conf_path": str(conf_path),
                "domain": domain,
                "validity_days": validity_days,
            }

        except OSError as e:
            raise SSLError(f"Failed to generate API certificate: {e}")

    def generate_postgres_certificate(
        self,
        output_dir: str = "ssl/postgres",
        key_size: int = 2048,
        validity_days: int = 3650,
    ) -> Dict[str, Any]:
        """
        Generate the PostgreSQL server key and self-signed certificate.

        root.crt is a copy of server.crt for client verification.
        """
        try:
            output_path = Path(output_dir)
            output_path.mkdir(parents=True, exist_ok=True)

            key_path = output_path / "server.key"
            csr_path = output_path / "server.csr"
            cert_path = output_path / "server.crt"
            root_path = output_path / "root.crt"

            private_key = self._new_key(key_size)
            self.files.write_secure(str(key_path), self._key_bytes(private_key, traditional=True), 0o600)

            csr = (
                x509.CertificateSigningRequestBuilder()
                .subject_name(_placeholder_name("postgres"))
                .sign(private_key, hashes.SHA256())
            )
            with open(csr_path, "wb") as f:
                f.write(csr.public_bytes(serialization.Encoding.PEM))

            cert = self._self_sign_csr(csr, private_key, validity_days, copy_extensions=False)
            self.files.write_secure(str(cert_path), cert.public_bytes(serialization.Encoding.PEM), 0o644)

            shutil.copy2(cert_path, root_path)

            logger.info(f"PostgreSQL certificate written to {output_path}")

            return {
                "key_path": str(key_path),
                "cert_path": str(cert_path),
                "csr_path": str(csr_path),
                "root_path": str(root_path),
                "validity_days": validity_days,
            }

        except OSError as e:
            raise SSLError(f"Failed to generate PostgreSQL certificate: {e}")

    def _load_certificate(self, cert_path: str) -> x509.Certificate:
        if not os.path.exists(cert_path):
            raise SSLError(f"Certificate file not found: {cert_path}")

        with open(cert_path, "rb") as f:
            cert_data = f.read()

        try:
            return x509.load_pem_x509_certificate(cert_data)
        except ValueError as e:
            raise SSLError(f"Invalid certificate format in {cert_path}: {e}")

    def validate_certificate(self, cert_path: str, key_path: str, domain: str) -> Dict[str, Any]:
        """
        Validate a certificate and key against a domain.

        Args:
            cert_path: Path to certificate file
            key_path: Path to private key file
            domain: Domain to validate against

        Returns:
            Dict[str, Any]: Validation results
        """
        validation = {
            "valid": True,
            "errors": [],
            "warnings": [],
            "cert_info": {},
            "expires_in_days": None,
        }

        if not os.path.exists(cert_path):
            validation["valid"] = False
            validation["errors"].append(f"Certificate file not found: {cert_path}")
            return validation

        if not os.path.exists(key_path):
            validation["valid"] = False
            validation["errors"].append(f"Private key file not found: {key_path}")
            return validation

        try:
            cert = self._load_certificate(cert_path)
        except SSLError as e:
            validation["valid"] = False
            validation["errors"].append(e.message)
            return validation

        validation["cert_info"] = {
            "subject": cert.subject.rfc4514_string(),
            "issuer": cert.issuer.rfc4514_string(),
            "serial_number": str(cert.serial_number),
            "not_valid_before": cert.not_valid_before_utc.isoformat(),
            "not_valid_after": cert.not_valid_after_utc.isoformat(),
        }

        expires_in = cert.not_valid_after_utc - _utcnow()
        validation["expires_in_days"] = expires_in.days

        if expires_in.days < 0:
            validation["valid"] = False
            validation["errors"].append("Certificate has expired")
        elif expires_in.days < EXPIRY_WARNING_DAYS:
            validation["warnings"].append(f"Certificate expires in {expires_in.days} days")

        # Domain match against CN, then SAN
        domain_valid = False
        for attribute in cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME):
            if hostname_matches(attribute.value, domain):
                domain_valid = True

        try:
            san_ext = cert.extensions.get_extension_for_oid(ExtensionOID.SUBJECT_ALTERNATIVE_NAME)
            san_names = [str(name.value) for name in san_ext.value]
            validation["cert_info"]["san_domains"] = san_names
            if any(hostname_matches(name, domain) for name in san_names):
                domain_valid = True
        except x509.ExtensionNotFound:
            pass

        if not domain_valid:
            validation["valid"] = False
            validation["errors"].append(f"Certificate is not valid for domain: {domain}")

        with open(key_path, "rb") as f:
            key_data = f.read()

        try:
            private_key = serialization.load_pem_private_key(key_data, password=None)
        except (ValueError, TypeError) as e:
            validation["valid"] = False
            validation["errors"].append(f"Invalid private key format: {e}")
            return validation

        public_der = cert.public_key().public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
        )
        private_public_der = private_key.public_key().public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
        )
        if public_der != private_public_der:
            validation["valid"] = False
            validation["errors"].append("Private key does not match certificate")

        return validation

    def check_certificate_expiration(self, cert_path: str, threshold_days: int = EXPIRY_WARNING_DAYS) -> Dict[str, Any]:
        """
        Check certificate expiration status.

        needs_renewal is set when the certificate expires within
        threshold_days, like a failing `openssl x509 -checkend`.

        Args:
            cert_path: Path to certificate file
            threshold_days: Renewal window in days

        Returns:
            Dict[str, Any]: Expiration information
        """
        cert = self._load_certificate(cert_path)

        now = _utcnow()
        expires_at = cert.not_valid_after_utc
        expires_in = expires_at - now

        status = "valid"
        if expires_in.total_seconds() < 0:
            status = "expired"
        elif expires_in.days < threshold_days:
            status = "expiring_soon"

        return {
            "status": status,
            "expires_at": expires_at.isoformat(),
            "expires_in_days": expires_in.days,
            "expired": status == "expired",
            "needs_renewal": expires_at <= now + timedelta(days=threshold_days),
        }

    def get_certificate_info(self, cert_path: str) -> Dict[str, Any]:
        """
        Get certificate details.

        Args:
            cert_path: Path to certificate file

        Returns:
            Dict[str, Any]: Certificate information
        """
        cert = self._load_certificate(cert_path)

        info = {
            "subject": {attribute.oid._name: attribute.value for attribute in cert.subject},
            "issuer": {attribute.oid._name: attribute.value for attribute in cert.issuer},
            "serial_number": str(cert.serial_number),
            "not_valid_before": cert.not_valid_before_utc.isoformat(),
            "not_valid_after": cert.not_valid_after_utc.isoformat(),
            "self_signed": cert.subject == cert.issuer,
            "san": [],
        }

        try:
            san_ext = cert.extensions.get_extension_for_oid(ExtensionOID.SUBJECT_ALTERNATIVE_NAME)
            info["san"] = [str(name.value) for name in san_ext.value]
        except x509.ExtensionNotFound:
            pass

        expires_in = cert.not_valid_after_utc - _utcnow()
        info["expires_in_days"] = expires_in.days
        info["expired"] = expires_in.total_seconds() < 0

        return info
