"""Abstract base class for DNS providers."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from contextlib import AbstractContextManager
from typing import Any, Callable

from polydns.errors import (
    ConnectionFailed,
    DnsProviderException,
    InvalidConfiguration,
    RecordCreationFailed,
    normalize_errors,
)
from polydns.models import (
    ConfigurationSchema,
    DnsRecord,
    RecordContent,
    coerce_content,
    normalize_domain,
    normalize_name,
    normalize_type,
)

logger = logging.getLogger(__name__)

# Python types accepted for each schema option type
_OPTION_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "boolean": (bool,),
}


class DNSProvider(ABC):
    """Abstract DNS provider interface.

    Every adapter translates these operations into one vendor's API and
    raises only :class:`~polydns.errors.DnsProviderException` subclasses.
    """

    name: str = ""
    DEFAULT_TTL: int = 300
    RECORD_TYPES: frozenset[str] = frozenset()
    SCHEMA: ConfigurationSchema = {}

    # Exceptions meaning the vendor was not reached / refused or garbled a call
    TRANSPORT_ERRORS: tuple[type[BaseException], ...] = ()
    REJECTION_ERRORS: tuple[type[BaseException], ...] = (
        AttributeError,
        KeyError,
        TypeError,
        ValueError,
    )

    def __init__(self, config: Mapping[str, Any]):
        self.config = dict(config)

    @abstractmethod
    def test_connection(self) -> bool:
        """Prove the configuration is valid and the vendor is reachable.

        Raises:
            InvalidConfiguration: A required credential is missing (no network call is made)
            ConnectionFailed: The vendor could not be reached or refused the credentials
        """
        pass

    @abstractmethod
    def create_record(
        self,
        domain: str,
        name: str,
        record_type: str,
        content: RecordContent | Mapping[str, Any],
        ttl: int | None = None,
    ) -> str:
        """Create a DNS record.

        Args:
            domain: The zone name (e.g., "example.com")
            name: The record name relative to the zone ("" or "@" for the apex)
            record_type: The record type (e.g., "A", "mx")
            content: Scalar content, or structured content for MX, SRV and CAA
            ttl: Time to live in seconds (provider default if omitted)

        Returns:
            The vendor-assigned record id
        """
        pass

    @abstractmethod
    def update_record(
        self,
        domain: str,
        record_id: str,
        content: RecordContent | Mapping[str, Any] | None = None,
        ttl: int | None = None,
    ) -> bool:
        """Update the content and/or TTL of a record; omitted fields are untouched.

        Args:
            domain: The zone name
            record_id: The vendor record id
            content: New content, if changing
            ttl: New TTL, if changing
        """
        pass

    @abstractmethod
    def delete_record(self, domain: str, record_id: str) -> None:
        """Delete a record. Deleting a missing record raises RecordDeletionFailed."""
        pass

    @abstractmethod
    def get_record(self, domain: str, record_id: str) -> DnsRecord:
        """Get a single record.

        Raises:
            ConnectionFailed: The record does not exist or the vendor is unreachable
        """
        pass

    @abstractmethod
    def list_records(
        self,
        domain: str,
        name: str | None = None,
        record_type: str | None = None,
    ) -> list[DnsRecord]:
        """List every record of a zone, across all vendor pages.

        Args:
            domain: The zone name
            name: Only records with this relative name ("" for the apex)
            record_type: Only records of this type
        """
        pass

    def get_configuration_schema(self) -> ConfigurationSchema:
        """Describe the configuration options this provider accepts."""
        return dict(self.SCHEMA)

    def get_supported_record_types(self) -> set[str]:
        return set(self.RECORD_TYPES)

    def validate_configuration(self, config: Mapping[str, Any]) -> bool:
        """Check that required options are present and every option is well formed.

        Raises:
            InvalidConfiguration: Naming the first offending option
        """
        for key, option in self.SCHEMA.items():
            value = config.get(key)
            if value is None or (isinstance(value, str) and not value.strip()):
                if option.required:
                    raise InvalidConfiguration(self.name, key)
                continue

            expected = _OPTION_TYPES.get(option.type, (object,))
            if not isinstance(value, expected) or (
                option.type == "integer" and isinstance(value, bool)
            ):
                raise InvalidConfiguration(self.name, key, f"expected a {option.type}")

        return True

    def find_record(self, domain: str, name: str, record_type: str) -> DnsRecord | None:
        """Find the first record with the given name and type."""
        records = self.list_records(domain, name=name, record_type=record_type)
        return records[0] if records else None

    def upsert_record(
        self,
        domain: str,
        name: str,
        record_type: str,
        content: RecordContent | Mapping[str, Any],
        ttl: int | None = None,
    ) -> str:
        """Create a record, or update the existing one with the same name and type.

        Returns:
            The id of the created or updated record
        """
        existing = self.find_record(domain, name, record_type)

        if existing:
            self.update_record(domain, existing.id, content=content, ttl=ttl)
            return existing.id

        return self.create_record(domain, name, record_type, content, ttl=ttl)

    def close(self) -> None:
        """Release the underlying client."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Helpers for adapters

    def _require(self, key: str) -> Any:
        value = self.config.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise InvalidConfiguration(self.name, key)
        return value

    def _secrets(self) -> list[str]:
        return [
            str(self.config[key])
            for key, option in self.SCHEMA.items()
            if option.sensitive and self.config.get(key)
        ]

    def _normalize(
        self, on_rejection: Callable[[str], DnsProviderException]
    ) -> AbstractContextManager[None]:
        return normalize_errors(
            self.name,
            on_rejection,
            transport=self.TRANSPORT_ERRORS,
            rejection=self.REJECTION_ERRORS,
            describe=self._describe_error,
            secrets=self._secrets(),
        )

    def _connection_failed(self, detail: str) -> ConnectionFailed:
        return ConnectionFailed(self.name, detail)

    def _describe_error(self, error: BaseException) -> str:
        if isinstance(error, (AttributeError, KeyError, TypeError, ValueError)):
            return f"unexpected response ({type(error).__name__}: {error})"
        return str(error) or type(error).__name__

    def _prepare_create(
        self,
        domain: str,
        name: str,
        record_type: str,
        content: RecordContent | Mapping[str, Any],
    ) -> tuple[str, str, str, RecordContent]:
        """Normalize create arguments, rejecting bad input before any network call."""
        domain = normalize_domain(domain)
        name = normalize_name(name)
        record_type = normalize_type(record_type)

        if record_type not in self.RECORD_TYPES:
            raise RecordCreationFailed(
                domain, name, f"record type {record_type} is not supported by {self.name}"
            )
        try:
            content = coerce_content(record_type, content)
        except ValueError as e:
            raise RecordCreationFailed(domain, name, str(e)) from None

        return domain, name, record_type, content

    @staticmethod
    def _filter(
        records: list[DnsRecord], name: str | None, record_type: str | None
    ) -> list[DnsRecord]:
        if name is not None:
            name = normalize_name(name)
            records = [r for r in records if r.name.lower() == name]
        if record_type is not None:
            record_type = normalize_type(record_type)
            records = [r for r in records if r.type == record_type]
        return records
