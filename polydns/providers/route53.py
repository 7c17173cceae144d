"""AWS Route 53 DNS provider implementation."""

import logging
import re
from collections.abc import Iterator, Mapping
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, ParamValidationError

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
    mx_from_text,
    normalize_domain,
    normalize_name,
    normalize_type,
    srv_from_text,
)
from polydns.prerequisites import PrerequisiteMap
from polydns.providers.base import DNSProvider

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
TXT_CHUNK = 255

_OCTAL_ESCAPE = re.compile(r"\\(\d{3})")
_TXT_STRING = re.compile(r'"((?:[^"\\]|\\.)*)"')


def _decode_name(name: str) -> str:
    """Decode Route 53's escaped, dot-terminated names (``\\052`` is ``*``)."""
    name = _OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), name)
    return name.rstrip(".").lower()


def _quote_txt(value: str) -> str:
    if value.startswith('"'):
        return value
    escaped = value.replace('"', '\\"')
    chunks = [escaped[i : i + TXT_CHUNK] for i in range(0, len(escaped), TXT_CHUNK)]
    return " ".join(f'"{chunk}"' for chunk in chunks)


def _unquote_txt(value: str) -> str:
    chunks = _TXT_STRING.findall(value)
    if not chunks:
        return value
    return "".join(chunks).replace('\\"', '"')


class Route53Provider(DNSProvider):
    """DNS provider implementation for AWS Route 53.

    Route 53 addresses record sets by name and type rather than by id, so
    record ids are the opaque string ``"<TYPE>:<fqdn>"``. A record set with
    several values is presented as one record whose content is the values
    joined by newlines.
    """

    name = "route53"
    DEFAULT_TTL = 300
    RECORD_TYPES = frozenset({"A", "AAAA", "CNAME", "MX", "TXT", "SRV", "NS", "CAA"})
    SCHEMA = {
        "aws_access_key_id": ConfigOption(
            type="string",
            required=True,
            description="AWS access key ID",
            sensitive=True,
        ),
        "aws_secret_access_key": ConfigOption(
            type="string",
            required=True,
            description="AWS secret access key",
            sensitive=True,
        ),
        "region": ConfigOption(
            type="string",
            required=False,
            description="AWS region for the API endpoint (default: us-east-1)",
            sensitive=False,
        ),
        "hosted_zone_id": ConfigOption(
            type="string",
            required=False,
            description="Route 53 Hosted Zone ID (Optional, looked up by domain if not provided)",
            sensitive=False,
        ),
    }

    TRANSPORT_ERRORS = (BotoCoreError,)
    # ParamValidationError is a BotoCoreError raised before anything is sent
    REJECTION_ERRORS = (
        ClientError,
        ParamValidationError,
        AttributeError,
        KeyError,
        TypeError,
        ValueError,
    )

    def __init__(
        self,
        config: Mapping[str, Any],
        timeout: float = DEFAULT_TIMEOUT,
        client: Any = None,
    ):
        """Initialize Route 53 provider.

        Args:
            config: Options described by SCHEMA
            timeout: Connect and read timeout in seconds
            client: Optional pre-built boto3 route53 client
        """
        super().__init__(config)
        self.client = client

        access_key = self.config.get("aws_access_key_id")
        secret_key = self.config.get("aws_secret_access_key")
        if client is None and access_key and secret_key:
            # Retries are left to the caller
            boto_config = Config(
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={"total_max_attempts": 1, "mode": "standard"},
            )
            self.client = boto3.client(
                "route53",
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=self.config.get("region") or "us-east-1",
                config=boto_config,
            )

        preset = self.config.get("hosted_zone_id")
        self._zone_ids: PrerequisiteMap[str, str] = PrerequisiteMap(
            self._discover_zone_id,
            preset=str(preset).rsplit("/", 1)[-1] if preset else None,
            label="Route 53 hosted zone id",
        )

    def _aws(self) -> Any:
        if self.client is None:
            self._require("aws_access_key_id")
            self._require("aws_secret_access_key")
        return self.client

    def _describe_error(self, error: BaseException) -> str:
        if isinstance(error, ClientError):
            info = error.response.get("Error", {})
            code = info.get("Code", "Unknown")
            message = info.get("Message", "")
            return f"{code}: {message}" if message else code
        if isinstance(error, BotoCoreError):
            return f"{type(error).__name__}: {error}"
        return super()._describe_error(error)

    def zone_id(self, domain: str) -> str:
        """Get the hosted zone id for a domain, resolved on first use."""
        return self._zone_ids.get(normalize_domain(domain))

    def _discover_zone_id(self, domain: str) -> str:
        with self._normalize(self._connection_failed):
            response = self._aws().list_hosted_zones_by_name(DNSName=domain, MaxItems="1")
            for zone in response["HostedZones"]:
                if _decode_name(zone["Name"]) == domain:
                    return zone["Id"].rsplit("/", 1)[-1]

        raise ConnectionFailed(self.name, f"Hosted zone {domain} not found")

    def test_connection(self) -> bool:
        """Verify the credentials with the cheapest authenticated call."""
        client = self._aws()

        with self._normalize(self._connection_failed):
            client.get_hosted_zone_count()

        return True

    # Record ids and wire formats

    @staticmethod
    def _record_id(record_type: str, fqdn: str) -> str:
        return f"{record_type}:{fqdn}"

    @staticmethod
    def _parse_record_id(record_id: str) -> tuple[str, str]:
        record_type, sep, fqdn = str(record_id).partition(":")
        if not sep or not record_type or not fqdn:
            raise ValueError(f"malformed record id '{record_id}'")
        return normalize_type(record_type), fqdn.rstrip(".").lower()

    def _fqdn(self, domain: str, name: str) -> str:
        return f"{name}.{domain}" if name else domain

    def _relative(self, domain: str, fqdn: str) -> str:
        if fqdn == domain:
            return ""
        suffix = f".{domain}"
        return fqdn[: -len(suffix)] if fqdn.endswith(suffix) else fqdn

    def _serialize(self, record_type: str, content: RecordContent) -> list[dict[str, str]]:
        """Render content as Route 53 ResourceRecords."""
        if isinstance(content, MXContent):
            values = [f"{content.priority} {content.exchange}"]
        elif isinstance(content, SRVContent):
            values = [f"{content.priority} {content.weight} {content.port} {content.target}"]
        elif isinstance(content, CAAContent):
            values = [caa_to_text(content)]
        else:
            values = [line.strip() for line in content.splitlines() if line.strip()]
            if record_type == "TXT":
                values = [_quote_txt(v) for v in values]
        return [{"Value": value} for value in values]

    def _to_record(self, domain: str, rrset: dict[str, Any]) -> DnsRecord:
        record_type = rrset["Type"]
        fqdn = _decode_name(rrset["Name"])

        values = [r["Value"] for r in rrset.get("ResourceRecords", [])]
        if not values and rrset.get("AliasTarget"):
            values = [_decode_name(rrset["AliasTarget"]["DNSName"])]

        content: RecordContent = "\n".join(values)
        if record_type == "TXT":
            content = "\n".join(_unquote_txt(v) for v in values)
        elif len(values) == 1:
            if record_type == "MX":
                content = mx_from_text(values[0]) or values[0]
            elif record_type == "SRV":
                content = srv_from_text(values[0]) or values[0]
            elif record_type == "CAA":
                content = caa_from_text(values[0]) or values[0]

        return DnsRecord(
            id=self._record_id(record_type, fqdn),
            domain=domain,
            name=self._relative(domain, fqdn),
            type=record_type,
            content=content,
            ttl=rrset.get("TTL", 0),
        )

    def _record_sets(
        self, zone_id: str, fqdn: str | None = None, record_type: str | None = None
    ) -> Iterator[dict[str, Any]]:
        """Yield record sets, starting at fqdn when given and stopping after it."""
        kwargs: dict[str, Any] = {"HostedZoneId": zone_id}
        if fqdn is not None:
            kwargs["StartRecordName"] = fqdn
            if record_type is not None:
                kwargs["StartRecordType"] = record_type

        paginator = self._aws().get_paginator("list_resource_record_sets")
        for page in paginator.paginate(**kwargs):
            for rrset in page["ResourceRecordSets"]:
                # Listing is sorted by name, so the first other name ends the run
                if fqdn is not None and _decode_name(rrset["Name"]) != fqdn:
                    return
                yield rrset

    def _fetch_record_set(
        self, zone_id: str, fqdn: str, record_type: str
    ) -> dict[str, Any] | None:
        response = self._aws().list_resource_record_sets(
            HostedZoneId=zone_id,
            StartRecordName=fqdn,
            StartRecordType=record_type,
            MaxItems="1",
        )
        for rrset in response["ResourceRecordSets"]:
            if _decode_name(rrset["Name"]) == fqdn and rrset["Type"] == record_type:
                return rrset
        return None

    def _change(self, zone_id: str, action: str, rrset: dict[str, Any]) -> None:
        logger.debug("route53 %s %s %s", action, rrset["Type"], rrset["Name"])
        self._aws().change_resource_record_sets(
            HostedZoneId=zone_id,
            ChangeBatch={
                "Comment": f"polydns {action.lower()}",
                "Changes": [{"Action": action, "ResourceRecordSet": rrset}],
            },
        )

    # Contract

    def create_record(
        self,
        domain: str,
        name: str,
        record_type: str,
        content: RecordContent | Mapping[str, Any],
        ttl: int | None = None,
    ) -> str:
        """Create a record set; fails if one with the same name and type exists."""
        domain, name, record_type, content = self._prepare_create(
            domain, name, record_type, content
        )
        zone_id = self.zone_id(domain)
        fqdn = self._fqdn(domain, name)

        rrset = {
            "Name": fqdn,
            "Type": record_type,
            "TTL": self.DEFAULT_TTL if ttl is None else ttl,
            "ResourceRecords": self._serialize(record_type, content),
        }
        with self._normalize(lambda detail: RecordCreationFailed(domain, name, detail)):
            self._change(zone_id, "CREATE", rrset)

        record_id = self._record_id(record_type, fqdn)
        logger.info("Created record %s in %s", record_id, domain)
        return record_id

    def update_record(
        self,
        domain: str,
        record_id: str,
        content: RecordContent | Mapping[str, Any] | None = None,
        ttl: int | None = None,
    ) -> bool:
        """Rewrite the record set with only the supplied fields changed."""
        domain = normalize_domain(domain)
        record_id = str(record_id)

        def failed(detail: str) -> RecordUpdateFailed:
            return RecordUpdateFailed(domain, [record_id], detail)

        try:
            record_type, fqdn = self._parse_record_id(record_id)
            records = None
            if content is not None:
                records = self._serialize(record_type, coerce_content(record_type, content))
        except ValueError as e:
            raise failed(str(e)) from None
        if records is None and ttl is None:
            raise failed("nothing to update")

        zone_id = self.zone_id(domain)
        with self._normalize(failed):
            current = self._fetch_record_set(zone_id, fqdn, record_type)
            if current is None:
                raise failed("record not found")
            if current.get("AliasTarget"):
                raise failed("alias records cannot be updated")

            rrset = dict(current)
            if records is not None:
                rrset["ResourceRecords"] = records
            if ttl is not None:
                rrset["TTL"] = ttl
            self._change(zone_id, "UPSERT", rrset)

        logger.info("Updated record %s in %s", record_id, domain)
        return True

    def delete_record(self, domain: str, record_id: str) -> None:
        domain = normalize_domain(domain)
        record_id = str(record_id)

        def failed(detail: str) -> RecordDeletionFailed:
            return RecordDeletionFailed(domain, [record_id], detail)

        try:
            record_type, fqdn = self._parse_record_id(record_id)
        except ValueError as e:
            raise failed(str(e)) from None

        zone_id = self.zone_id(domain)
        with self._normalize(failed):
            current = self._fetch_record_set(zone_id, fqdn, record_type)
            if current is None:
                raise failed("record not found")
            self._change(zone_id, "DELETE", current)

        logger.info("Deleted record %s in %s", record_id, domain)

    def get_record(self, domain: str, record_id: str) -> DnsRecord:
        domain = normalize_domain(domain)

        with self._normalize(self._connection_failed):
            record_type, fqdn = self._parse_record_id(record_id)
            current = self._fetch_record_set(self.zone_id(domain), fqdn, record_type)
            if current is None:
                raise ConnectionFailed(self.name, f"record {record_id} not found")
            return self._to_record(domain, current)

    def list_records(
        self,
        domain: str,
        name: str | None = None,
        record_type: str | None = None,
    ) -> list[DnsRecord]:
        """List all record sets of a zone, following every page."""
        domain = normalize_domain(domain)
        zone_id = self.zone_id(domain)

        fqdn = None
        if name is not None:
            fqdn = self._fqdn(domain, normalize_name(name))
        wanted_type = normalize_type(record_type) if record_type else None

        with self._normalize(self._connection_failed):
            records = [
                self._to_record(domain, rrset)
                for rrset in self._record_sets(zone_id, fqdn, wanted_type)
            ]

        return self._filter(records, name, record_type)
