"""Cloudflare DNS provider implementation."""

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from polydns.errors import (
    ConnectionFailed,
    RecordCreationFailed,
    RecordDeletionFailed,
    RecordUpdateFailed,
)
from polydns.models import (
    CAAContent,
    ConfigOption,
    DnsRecord,
    MXContent,
    RecordContent,
    SRVContent,
    caa_from_text,
    coerce_content,
    normalize_domain,
    normalize_name,
    normalize_type,
    srv_from_text,
)
from polydns.prerequisites import PrerequisiteMap
from polydns.providers.http import DEFAULT_TIMEOUT, JSONAPIProvider, VendorError

logger = logging.getLogger(__name__)


class CloudflareProvider(JSONAPIProvider):
    """DNS provider implementation for Cloudflare.

    Record calls are scoped by a zone id. It is taken from the ``zone_id``
    option when set, otherwise looked up by domain name once per instance.
    Cloudflare names records by FQDN; this adapter exposes relative names.
    """

    name = "cloudflare"
    BASE_URL = "https://api.cloudflare.com/client/v4"
    PER_PAGE = 100
    DEFAULT_TTL = 1  # automatic
    RECORD_TYPES = frozenset({"A", "AAAA", "CNAME", "MX", "TXT", "SRV", "NS", "CAA"})
    SCHEMA = {
        "api_token": ConfigOption(
            type="string",
            required=True,
            description="Cloudflare API Token with Zone.DNS edit permission",
            sensitive=True,
        ),
        "zone_id": ConfigOption(
            type="string",
            required=False,
            description="Cloudflare Zone ID (Optional, looked up by domain if not provided)",
            sensitive=False,
        ),
    }

    def __init__(
        self,
        config: Mapping[str, Any],
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        super().__init__(config, timeout=timeout, transport=transport)
        preset = self.config.get("zone_id")
        self._zone_ids: PrerequisiteMap[str, str] = PrerequisiteMap(
            self._discover_zone_id,
            preset=str(preset) if preset else None,
            label="Cloudflare zone id",
        )

    def zone_id(self, domain: str) -> str:
        """Get the zone id for a domain, resolved on first use."""
        return self._zone_ids.get(normalize_domain(domain))

    def _discover_zone_id(self, domain: str) -> str:
        with self._normalize(self._connection_failed):
            zones = self._request("GET", "/zones", params={"name": domain})["result"]
            if zones:
                return str(zones[0]["id"])

        raise ConnectionFailed(self.name, f"Zone {domain} not found in this Cloudflare account")

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        body = super()._request(method, path, **kwargs)
        if body.get("success") is False:
            raise VendorError(self._vendor_message(body) or "request was not successful")
        return body

    def _vendor_message(self, body: Any) -> str:
        if not isinstance(body, dict):
            return ""
        errors = body.get("errors") or []
        messages = [
            f"{e.get('message', '')} ({e['code']})" if e.get("code") else str(e.get("message", ""))
            for e in errors
            if isinstance(e, dict)
        ]
        return "; ".join(m for m in messages if m)

    def test_connection(self) -> bool:
        """Verify the API token."""
        self._http()

        with self._normalize(self._connection_failed):
            result = self._request("GET", "/user/tokens/verify")["result"]
            status = result.get("status")
            if status != "active":
                raise ConnectionFailed(self.name, f"API token status is '{status}'")

        return True

    def _fqdn(self, domain: str, name: str) -> str:
        return f"{name}.{domain}" if name else domain

    def _relative(self, domain: str, fqdn: str) -> str:
        fqdn = fqdn.rstrip(".").lower()
        if fqdn == domain:
            return ""
        suffix = f".{domain}"
        return fqdn[: -len(suffix)] if fqdn.endswith(suffix) else fqdn

    def _serialize(self, content: RecordContent) -> dict[str, Any]:
        """Map content onto Cloudflare's content/priority/data fields."""
        if isinstance(content, MXContent):
            return {"content": content.exchange, "priority": content.priority}
        if isinstance(content, SRVContent):
            return {
                "data": {
                    "priority": content.priority,
                    "weight": content.weight,
                    "port": content.port,
                    "target": content.target,
                }
            }
        if isinstance(content, CAAContent):
            return {
                "data": {"flags": content.flags, "tag": content.tag, "value": content.value}
            }
        return {"content": content}

    def _to_record(self, domain: str, data: dict[str, Any]) -> DnsRecord:
        record_type = data["type"]
        text = data.get("content") or ""
        extra = data.get("data") or {}
        content: RecordContent = text

        if record_type == "MX":
            content = MXContent(priority=data.get("priority") or 0, exchange=text)
        elif record_type == "SRV":
            if extra:
                content = SRVContent.model_validate(extra)
            else:
                content = srv_from_text(text, priority=data.get("priority") or 0) or text
        elif record_type == "CAA":
            if extra:
                content = CAAContent.model_validate(extra)
            else:
                content = caa_from_text(text) or text

        return DnsRecord(
            id=str(data["id"]),
            domain=domain,
            name=self._relative(domain, data["name"]),
            type=record_type,
            content=content,
            ttl=data["ttl"],
        )

    def create_record(
        self,
        domain: str,
        name: str,
        record_type: str,
        content: RecordContent | Mapping[str, Any],
        ttl: int | None = None,
    ) -> str:
        """Create a DNS record and return its id."""
        domain, name, record_type, content = self._prepare_create(
            domain, name, record_type, content
        )
        zone_id = self.zone_id(domain)

        payload = {
            "name": self._fqdn(domain, name),
            "type": record_type,
            "ttl": self.DEFAULT_TTL if ttl is None else ttl,
            **self._serialize(content),
        }

        with self._normalize(lambda detail: RecordCreationFailed(domain, name, detail)):
            body = self._request("POST", f"/zones/{zone_id}/dns_records", json=payload)
            record_id = str(body["result"]["id"])

        logger.info("Created %s record %s in %s", record_type, record_id, domain)
        return record_id

    def update_record(
        self,
        domain: str,
        record_id: str,
        content: RecordContent | Mapping[str, Any] | None = None,
        ttl: int | None = None,
    ) -> bool:
        """Patch only the supplied fields of a record."""
        domain = normalize_domain(domain)
        record_id = str(record_id)

        payload: dict[str, Any] = {}
        try:
            if content is not None:
                payload.update(self._serialize(coerce_content(None, content)))
        except ValueError as e:
            raise RecordUpdateFailed(domain, [record_id], str(e)) from None
        if ttl is not None:
            payload["ttl"] = ttl
        if not payload:
            raise RecordUpdateFailed(domain, [record_id], "nothing to update")

        path = f"/zones/{self.zone_id(domain)}/dns_records/{record_id}"
        with self._normalize(lambda detail: RecordUpdateFailed(domain, [record_id], detail)):
            self._request("PATCH", path, json=payload)

        logger.info("Updated record %s in %s", record_id, domain)
        return True

    def delete_record(self, domain: str, record_id: str) -> None:
        domain = normalize_domain(domain)
        record_id = str(record_id)
        path = f"/zones/{self.zone_id(domain)}/dns_records/{record_id}"

        with self._normalize(lambda detail: RecordDeletionFailed(domain, [record_id], detail)):
            self._request("DELETE", path)

        logger.info("Deleted record %s in %s", record_id, domain)

    def get_record(self, domain: str, record_id: str) -> DnsRecord:
        domain = normalize_domain(domain)
        path = f"/zones/{self.zone_id(domain)}/dns_records/{record_id}"

        with self._normalize(self._connection_failed):
            return self._to_record(domain, self._request("GET", path)["result"])

    def list_records(
        self,
        domain: str,
        name: str | None = None,
        record_type: str | None = None,
    ) -> list[DnsRecord]:
        """List all DNS records for a domain, following every page."""
        domain = normalize_domain(domain)
        path = f"/zones/{self.zone_id(domain)}/dns_records"

        params: dict[str, Any] = {"per_page": self.PER_PAGE}
        if name is not None:
            params["name"] = self._fqdn(domain, normalize_name(name))
        if record_type:
            params["type"] = normalize_type(record_type)

        records: list[DnsRecord] = []
        page = 1
        with self._normalize(self._connection_failed):
            while True:
                body = self._request("GET", path, params={**params, "page": page})
                records.extend(self._to_record(domain, r) for r in body.get("result", []))

                result_info = body.get("result_info") or {}
                if page >= int(result_info.get("total_pages") or 1):
                    break
                page += 1

        return self._filter(records, name, record_type)
