"""TLS settings for the listening socket."""

from __future__ import annotations

import ssl
from typing import Iterable

from patroniglue.config import ConfigurationError
from patroniglue.models import FrontendConfig

TLS_VERSIONS: dict[str, ssl.TLSVersion] = {
    "TLSv1.0": ssl.TLSVersion.TLSv1,
    "TLSv1.1": ssl.TLSVersion.TLSv1_1,
    "TLSv1.2": ssl.TLSVersion.TLSv1_2,
    "TLSv1.3": ssl.TLSVersion.TLSv1_3,
}

# IANA suite name -> OpenSSL cipher name. None marks TLS 1.3 suites, which
# OpenSSL always enables and does not configure through set_ciphers().
TLS_CIPHERS: dict[str, str | None] = {
    "TLS_RSA_WITH_RC4_128_SHA": "RC4-SHA",
    "TLS_RSA_WITH_3DES_EDE_CBC_SHA": "DES-CBC3-SHA",
    "TLS_RSA_WITH_AES_128_CBC_SHA": "AES128-SHA",
    "TLS_RSA_WITH_AES_256_CBC_SHA": "AES256-SHA",
    "TLS_RSA_WITH_AES_128_CBC_SHA256": "AES128-SHA256",
    "TLS_RSA_WITH_AES_128_GCM_SHA256": "AES128-GCM-SHA256",
    "TLS_RSA_WITH_AES_256_GCM_SHA384": "AES256-GCM-SHA384",
    "TLS_ECDHE_ECDSA_WITH_RC4_128_SHA": "ECDHE-ECDSA-RC4-SHA",
    "TLS_ECDHE_ECDSA_WITH_AES_128_CBC_SHA": "ECDHE-ECDSA-AES128-SHA",
    "TLS_ECDHE_ECDSA_WITH_AES_256_CBC_SHA": "ECDHE-ECDSA-AES256-SHA",
    "TLS_ECDHE_RSA_WITH_RC4_128_SHA": "ECDHE-RSA-RC4-SHA",
    "TLS_ECDHE_RSA_WITH_3DES_EDE_CBC_SHA": "ECDHE-RSA-DES-CBC3-SHA",
    "TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA": "ECDHE-RSA-AES128-SHA",
    "TLS_ECDHE_RSA_WITH_AES_256_CBC_SHA": "ECDHE-RSA-AES256-SHA",
    "TLS_ECDHE_ECDSA_WITH_AES_128_CBC_SHA256": "ECDHE-ECDSA-AES128-SHA256",
    "TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA256": "ECDHE-RSA-AES128-SHA256",
    "TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256": "ECDHE-RSA-AES128-GCM-SHA256",
    "TLS_ECDHE_ECDSA_WITH_AES_128_GCM_SHA256": "ECDHE-ECDSA-AES128-GCM-SHA256",
    "TLS_ECDHE_RSA_WITH_AES_256_GCM_SHA384": "ECDHE-RSA-AES256-GCM-SHA384",
    "TLS_ECDHE_ECDSA_WITH_AES_256_GCM_SHA384": "ECDHE-ECDSA-AES256-GCM-SHA384",
    "TLS_ECDHE_RSA_WITH_CHACHA20_POLY1305": "ECDHE-RSA-CHACHA20-POLY1305",
    "TLS_ECDHE_ECDSA_WITH_CHACHA20_POLY1305": "ECDHE-ECDSA-CHACHA20-POLY1305",
    "TLS_AES_128_GCM_SHA256": None,
    "TLS_AES_256_GCM_SHA384": None,
    "TLS_CHACHA20_POLY1305_SHA256": None,
}


def parse_tls_version(name: str) -> ssl.TLSVersion:
    if name == "SSLv3.0":
        raise ConfigurationError("TLS version SSLv3.0 is not supported")
    try:
        return TLS_VERSIONS[name]
    except KeyError:
        raise ConfigurationError(f"unknown TLS version: {name}") from None


def parse_cipher_suites(names: Iterable[str]) -> str | None:
    """Convert IANA cipher suite names into an OpenSSL cipher string.

    Returns None when only TLS 1.3 suites were given.
    """
    ciphers: list[str] = []
    for name in names:
        if name not in TLS_CIPHERS:
            raise ConfigurationError(f"unknown cipher detected: {name}")
        openssl_name = TLS_CIPHERS[name]
        if openssl_name is not None:
            ciphers.append(openssl_name)

    if not ciphers:
        return None

    cipher_string = ":".join(ciphers)
    try:
        ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER).set_ciphers(cipher_string)
    except ssl.SSLError as exc:
        raise ConfigurationError(f"no usable cipher in {cipher_string}: {exc}") from exc
    return cipher_string


def apply_tls_settings(context: ssl.SSLContext, frontend: FrontendConfig) -> ssl.SSLContext:
    if frontend.tls_min_version:
        context.minimum_version = parse_tls_version(frontend.tls_min_version)
    if frontend.tls_ciphers:
        cipher_string = parse_cipher_suites(frontend.tls_ciphers)
        if cipher_string:
            context.set_ciphers(cipher_string)
    return context
