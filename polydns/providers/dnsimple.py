"""DNSimple DNS provider implementation."""

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
    caa_to_text,
    coerce_content,
    normalize_domain,
    normalize_name,
    normalize_type,
    srv_from_text,
)
from polydns.prerequisites import Prerequisite
from polydns.providers.http import DEFAULT_TIMEOUT, JSONAPIProvider

logger = logging.getLogger(__name__)


class DNSimpleProvider(JSONAPIProvider):
    """DNS provider implementation for DNSimple.

    Zone calls are scoped by an account id. It is taken from the
    ``account_id`` option when set, otherwise discovered once per instance
    through ``/whoami``.
    """

    name = "dnsimple"
    BASE_URL = "https://api.dnsimple.com/v2"
    PER_PAGE = 100
    DEFAULT_TTL = 300
    RECORD_TYPES = frozenset({"A", "AAAA", "CNAME", "MX", "TXT", "SRV", "NS", "CAA"})
    SCHEMA = {
        "api_token": ConfigOption(
            type="string",
            required=True,
            description="DNSimple API Access Token",
            sensitive=True,
        ),
        "account_id": ConfigOption(
            type="string",
            required=False,
            description="DNSimple Account ID (Optional, will be auto-detected if not provided)",
            sensitive=False,
        ),
    }

    def __init__(
        self,
        config: Mapping[str, Any],
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize DNSimple provider.

        Args:
            config: Options described by SCHEMA
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        super().__init__(config, timeout=timeout, transport=transport)
        preset = self.config.get("account_id")
        self._account_id = Prerequisite(
            self._discover_account_id,
            preset=str(preset) if preset else None,
            label="DNSimple account id",
        )

    @property
    def account_id(self) -> str:
        """The account id, resolved on first use."""
        return self._account_id.get()

    def _discover_account_id(self) -> str:
        with self._normalize(self._connection_failed):
            whoami = self._request("GET", "/whoami")["data"]
            account = whoami.get("account")
            if account and account.get("id"):
                return str(account["id"])

            # User tokens carry no account; usable only if exactly one is reachable
            if whoami.get("user"):
                accounts = self._request("GET", "/accounts")["data"]
                if len(accounts) == 1:
                    return str(accounts[0]["id"])

        raise ConnectionFailed(self.name, "Unable to determine Account ID from DNSimple API")

    def _records_path(self, domain: str) -> str:
        # DNSimple uses the domain name as the zone id
        return f"/{self.account_id}/zones/{domain}/records"

    def test_connection(self) -> bool:
        """Verify the token by calling /whoami (or resolving the account id)."""
        self._http()

        if self._account_id.resolved:
            with self._normalize(self._connection_failed):
                self._request("GET", "/whoami")
        else:
            self._account_id.get()

        return True

    def _serialize(self, content: RecordContent) -> dict[str, Any]:
        """Map content onto DNSimple's content/priority fields."""
        if isinstance(content, MXContent):
            return {"content": content.exchange, "priority": content.priority}
        if isinstance(content, SRVContent):
            return {
                "content": f"{content.weight} {content.port} {content.target}",
                "priority": content.priority,
            }
        if isinstance(content, CAAContent):
            return {"content": caa_to_text(content)}
        return {"content": content}

    def _to_record(self, domain: str, data: dict[str, Any]) -> DnsRecord:
        record_type = data["type"]
        text = data["content"]
        content: RecordContent = text

        if record_type == "MX":
            content = MXContent(priority=data.get("priority") or 0, exchange=text)
        elif record_type == "SRV":
            content = srv_from_text(text, priority=data.get("priority") or 0) or text
        elif record_type == "CAA":
            content = caa_from_text(text) or text

        return DnsRecord(
            id=str(data["id"]),
            domain=domain,
            name=data.get("name") or "",
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
        path = self._records_path(domain)

        payload = {
            "name": name,
            "type": record_type,
            "ttl": self.DEFAULT_TTL if ttl is None else ttl,
            **self._serialize(content),
        }

        with self._normalize(lambda detail: RecordCreationFailed(domain, name, detail)):
            data = self._request("POST", path, json=payload)
            record_id = str(data["data"]["id"])

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

        path = f"{self._records_path(domain)}/{record_id}"
        with self._normalize(lambda detail: RecordUpdateFailed(domain, [record_id], detail)):
            self._request("PATCH", path, json=payload)

        logger.info("Updated record %s in %s", record_id, domain)
        return True

    def delete_record(self, domain: str, record_id: str) -> None:
        """Delete a record by id."""
        domain = normalize_domain(domain)
        record_id = str(record_id)
        path = f"{self._records_path(domain)}/{record_id}"

        with self._normalize(lambda detail: RecordDeletionFailed(domain, [record_id], detail)):
            self._request("DELETE", path)

        logger.info("Deleted record %s in %s", record_id, domain)

    def get_record(self, domain: str, record_id: str) -> DnsRecord:
        domain = normalize_domain(domain)
        path = f"{self._records_path(domain)}/{record_id}"

        with self._normalize(self._connection_failed):
            data = self._request("GET", path)
            return self._to_record(domain, data["data"])

    def list_records(
        self,
        domain: str,
        name: str | None = None,
        record_type: str | None = None,
    ) -> list[DnsRecord]:
        """List all DNS records for a domain, following every page."""
        domain = normalize_domain(domain)
        path = self._records_path(domain)

        params: dict[str, Any] = {"per_page": self.PER_PAGE}
        if name is not None and normalize_name(name):
            params["name"] = normalize_name(name)
        if record_type:
            params["type"] = normalize_type(record_type)

        records: list[DnsRecord] = []
        page = 1
        with self._normalize(self._connection_failed):
            while True:
                data = self._request("GET", path, params={**params, "page": page})
                records.extend(self._to_record(domain, r) for r in data.get("data", []))

                pagination = data.get("pagination") or {}
                if page >= int(pagination.get("total_pages") or 1):
                    break
                page += 1

        return self._filter(records, name, record_type)
