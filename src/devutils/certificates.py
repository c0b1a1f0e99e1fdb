"""Self-signed TLS certificates for local HTTPS.

Used when HTTPS=true is set without SSL_CRT_FILE and SSL_KEY_FILE. Browsers
warn about the certificate, but the app is served over https right away.
"""
from __future__ import annotations

import datetime
import ipaddress
import logging
from pathlib import Path
from typing import Iterable, List

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

logger = logging.getLogger(__name__)

COMMON_NAME = 'localhost'
VALIDITY = datetime.timedelta(days=30)
LOOPBACK_ADDRESSES = ('127.0.0.1', '::1')


def _subject_alternative_names(hosts: Iterable[str]) -> List[x509.GeneralName]:
    names: List[x509.GeneralName] = [x509.DNSName(COMMON_NAME)]
    for host in (*LOOPBACK_ADDRESSES, *hosts):
        try:
            name = x509.IPAddress(ipaddress.ip_address(host))
        except ValueError:
            name = x509.DNSName(host)
        if name not in names:
            names.append(name)
    return names


def generate_self_signed(cert_file: Path, key_file: Path, hosts: Iterable[str] = ()) -> None:
    """Write a PEM certificate and its unencrypted private key.

    The certificate covers localhost, the loopback addresses and ``hosts``
    (IP addresses or hostnames, e.g. the bind host and the LAN address).

    Args:
        cert_file: Destination of the certificate.
        key_file: Destination of the private key.
        hosts: Extra names the server is reached under.
    """
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, COMMON_NAME)])
    not_before = datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(minutes=5)

    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_before + VALIDITY)
        .add_extension(x509.SubjectAlternativeName(_subject_alternative_names(hosts)), critical=False)
        .sign(key, hashes.SHA256())
    )

    key_file.write_bytes(key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ))
    cert_file.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    logger.debug(f"Generated self-signed certificate {cert_file}")
