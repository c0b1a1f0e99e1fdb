"""Dev server configuration derived from settings, proxy and LAN address."""
from __future__ import annotations

import logging
import ssl
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from config.paths import AppPaths
from config.settings import DevServerSettings
from devutils.certificates import generate_self_signed
from devutils.errors import SSLConfigError
from devutils.proxy import ProxyConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DevServerConfig:
    """Everything DevServer needs besides the compiler.

    Attributes:
        public_dir: Content base served as-is.
        host: Bind host, also accepted in Host headers.
        proxy: Backend requests are forwarded to, if any.
        allowed_host: Extra Host header value to accept (the LAN address).
        ssl_context: TLS context when serving https.
        disable_host_check: Skip Host header validation.
    """

    public_dir: Path
    host: str = '0.0.0.0'
    proxy: Optional[ProxyConfig] = None
    allowed_host: Optional[str] = None
    ssl_context: Optional[ssl.SSLContext] = None
    disable_host_check: bool = True

    @property
    def https(self) -> bool:
        return self.ssl_context is not None


def _load_ssl_context(crt_file: Path, key_file: Path) -> ssl.SSLContext:
    context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    try:
        context.load_cert_chain(certfile=str(crt_file), keyfile=str(key_file))
    except (ssl.SSLError, OSError) as e:
        raise SSLConfigError(f'The certificate "{crt_file}" or key "{key_file}" is invalid: {e}') from e
    return context


def build_ssl_context(settings: DevServerSettings, hosts: Iterable[str] = ()) -> ssl.SSLContext:
    """Create the server TLS context.

    Uses SSL_CRT_FILE and SSL_KEY_FILE when they are set. Without them a
    self-signed certificate for localhost and ``hosts`` is generated.

    Raises:
        SSLConfigError: If only one of the files is set, or a configured file
            is missing or unusable.
    """
    crt_file, key_file = settings.ssl_crt_file, settings.ssl_key_file
    if crt_file is None and key_file is None:
        logger.info("SSL_CRT_FILE and SSL_KEY_FILE are not set, using a self-signed certificate")
        with tempfile.TemporaryDirectory(prefix='devstart-') as tmp:
            crt_file, key_file = Path(tmp) / 'localhost.crt', Path(tmp) / 'localhost.key'
            generate_self_signed(crt_file, key_file, hosts)
            return _load_ssl_context(crt_file, key_file)

    if crt_file is None or key_file is None:
        raise SSLConfigError(
            'You specified HTTPS=true with only one of SSL_CRT_FILE and SSL_KEY_FILE. '
            'Set both, or neither to use a self-signed certificate.'
        )
    for path in (crt_file, key_file):
        if not path.is_file():
            raise SSLConfigError(f'You specified HTTPS=true but the file "{path}" can\'t be found.')
    return _load_ssl_context(crt_file, key_file)


def create_dev_server_config(
    settings: DevServerSettings,
    paths: AppPaths,
    proxy: Optional[ProxyConfig],
    allowed_host: Optional[str],
) -> DevServerConfig:
    """Assemble DevServerConfig.

    Host checking protects proxied backends from DNS rebinding, so it is only
    enabled when a proxy is configured, and can be turned off with
    DANGEROUSLY_DISABLE_HOST_CHECK=true.
    """
    ssl_context = None
    if settings.https:
        hosts = [] if settings.is_unspecified_host else [settings.host]
        if allowed_host:
            hosts.append(allowed_host)
        ssl_context = build_ssl_context(settings, hosts)
    disable_host_check = proxy is None or settings.dangerously_disable_host_check
    if proxy is not None and disable_host_check:
        logger.warning("Host header check is disabled while proxying requests")
    return DevServerConfig(
        public_dir=paths.app_public,
        host=settings.host,
        proxy=proxy,
        allowed_host=allowed_host,
        ssl_context=ssl_context,
        disable_host_check=disable_host_check,
    )
