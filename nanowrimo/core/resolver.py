"""
Alternate DNS resolution for the dispatcher.

DnsResolver looks names up over DNS-over-HTTPS, -TLS or -QUIC with
dnspython, optionally insisting on DNSSEC-validated answers. It plugs into
httpx as a transport wrapper, so it only changes how host names become
addresses: TLS still verifies against the original host name.
"""

import ipaddress
import logging
from typing import Literal

import dns.asyncquery
import dns.exception
import dns.flags
import dns.message
import dns.rdatatype
import httpx

from nanowrimo.core.settings import ClientSettings

logger = logging.getLogger(__name__)

DnsTransport = Literal["https", "tls", "quic"]


class ResolutionError(OSError):
    """A host name could not be resolved through the configured resolver."""


class DnsResolver:
    """Resolve host names through an encrypted DNS upstream."""

    def __init__(
        self,
        transport: DnsTransport,
        server: str,
        server_hostname: str | None = None,
        dnssec: bool = False,
        timeout: float = 5.0,
    ):
        self.transport = transport
        self.server = server
        self.server_hostname = server_hostname
        self.dnssec = dnssec
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "DnsResolver | None":
        """Build the resolver the settings ask for, or None for the platform default."""
        if settings.dns_resolver == "system":
            return None
        return cls(
            settings.dns_resolver,
            settings.dns_server or "",
            server_hostname=settings.dns_server_hostname,
            dnssec=settings.dnssec,
            timeout=min(settings.timeout_seconds, 10.0),
        )

    async def _query(self, request: dns.message.Message) -> dns.message.Message:
        if self.transport == "https":
            return await dns.asyncquery.https(request, self.server, timeout=self.timeout)
        if self.transport == "tls":
            return await dns.asyncquery.tls(
                request, self.server, timeout=self.timeout, server_hostname=self.server_hostname
            )
        return await dns.asyncquery.quic(
            request, self.server, timeout=self.timeout, server_hostname=self.server_hostname
        )

    async def _lookup(self, host: str, rdtype: dns.rdatatype.RdataType) -> list[str]:
        request = dns.message.make_query(host, rdtype, want_dnssec=self.dnssec)
        if self.dnssec:
            request.flags |= dns.flags.AD
        response = await self._query(request)
        if self.dnssec and not response.flags & dns.flags.AD:
            raise ResolutionError(f"DNSSEC validation failed for {host}")
        return [rdata.address for rrset in response.answer if rrset.rdtype == rdtype for rdata in rrset]

    async def resolve(self, host: str) -> list[str]:
        """
        Resolve a host name to its addresses, IPv4 first.

        Raises:
            ResolutionError: If the lookup fails or returns nothing

        """
        try:
            addresses = await self._lookup(host, dns.rdatatype.A)
            addresses += await self._lookup(host, dns.rdatatype.AAAA)
        except dns.exception.DNSException as exc:
            raise ResolutionError(f"DNS lookup for {host} failed: {exc}") from exc
        if not addresses:
            raise ResolutionError(f"No addresses found for {host}")
        logger.debug(
            "nanowrimo_dns_resolved",
            extra={"host": host, "addresses": addresses, "transport": self.transport},
        )
        return addresses


def _is_ip(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


class ResolvingTransport(httpx.AsyncBaseTransport):
    """
    httpx transport that resolves host names with a DnsResolver.

    The request goes to the inner transport with the address in the URL.
    The Host header keeps the original name, and so does the TLS server
    name, so certificates are still checked against the host asked for.
    """

    def __init__(self, resolver: DnsResolver, transport: httpx.AsyncBaseTransport | None = None):
        self._resolver = resolver
        self._transport = transport or httpx.AsyncHTTPTransport()

    def _pinned(self, request: httpx.Request, address: str) -> httpx.Request:
        extensions = dict(request.extensions)
        if request.url.scheme == "https":
            extensions.setdefault("sni_hostname", request.url.host)
        return httpx.Request(
            request.method,
            request.url.copy_with(host=address),
            headers=request.headers,
            stream=request.stream,
            extensions=extensions,
        )

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if _is_ip(host):
            return await self._transport.handle_async_request(request)
        try:
            addresses = await self._resolver.resolve(host)
        except ResolutionError as exc:
            raise httpx.ConnectError(str(exc), request=request) from exc

        last_error: Exception | None = None
        for address in addresses:
            try:
                return await self._transport.handle_async_request(self._pinned(request, address))
            except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
                last_error = exc
        raise httpx.ConnectError(f"Could not connect to {host}", request=request) from last_error

    async def aclose(self) -> None:
        await self._transport.aclose()
