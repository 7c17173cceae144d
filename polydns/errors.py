"""Error taxonomy shared by every DNS provider.

Exception Hierarchy:
    DnsProviderException (Base)
    ├─ InvalidConfiguration  - Required option missing or malformed
    ├─ ConnectionFailed      - Transport failure, timeout, unreadable response
    ├─ RecordCreationFailed  - Vendor rejected a create
    ├─ RecordUpdateFailed    - Vendor rejected an update
    ├─ RecordDeletionFailed  - Vendor rejected a delete
    └─ UnknownProvider       - No adapter registered under a name
"""

import logging
import re
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from enum import Enum

logger = logging.getLogger(__name__)

REDACTED = "***"
SHORT_SECRET_LENGTH = 8


class ErrorKind(str, Enum):
    """Failure classes a caller can act on."""

    INVALID_CONFIGURATION = "invalid_configuration"
    CONNECTION_FAILED = "connection_failed"
    RECORD_CREATION_FAILED = "record_creation_failed"
    RECORD_UPDATE_FAILED = "record_update_failed"
    RECORD_DELETION_FAILED = "record_deletion_failed"
    UNKNOWN_PROVIDER = "unknown_provider"


class DnsProviderException(Exception):
    """Base exception for all provider failures."""

    kind: ErrorKind
    retryable = False

    def __init__(self, message: str, detail: str = ""):
        self.message = message
        self.detail = detail
        super().__init__(f"{message}: {detail}" if detail else message)


class InvalidConfiguration(DnsProviderException):
    """A required configuration option is missing or malformed."""

    kind = ErrorKind.INVALID_CONFIGURATION

    def __init__(self, provider: str, key: str, detail: str = ""):
        self.provider = provider
        self.key = key
        super().__init__(
            f"Invalid configuration for {provider}: '{key}' is missing or invalid",
            detail,
        )


class ConnectionFailed(DnsProviderException):
    """The vendor could not be reached or returned an unusable response."""

    kind = ErrorKind.CONNECTION_FAILED
    retryable = True

    def __init__(self, provider: str, detail: str = ""):
        self.provider = provider
        super().__init__(f"Connection to {provider} failed", detail)


class RecordCreationFailed(DnsProviderException):
    """The vendor rejected a record creation."""

    kind = ErrorKind.RECORD_CREATION_FAILED

    def __init__(self, domain: str, name: str, detail: str = ""):
        self.domain = domain
        self.name = name
        label = f"{name}.{domain}" if name else domain
        super().__init__(f"Failed to create record {label}", detail)


class RecordUpdateFailed(DnsProviderException):
    """The vendor rejected a record update."""

    kind = ErrorKind.RECORD_UPDATE_FAILED

    def __init__(self, domain: str, record_ids: list[str], detail: str = ""):
        self.domain = domain
        self.record_ids = list(record_ids)
        super().__init__(
            f"Failed to update record(s) {', '.join(self.record_ids)} in {domain}",
            detail,
        )


class RecordDeletionFailed(DnsProviderException):
    """The vendor rejected a record deletion.

    The record may already be gone; callers should re-check with
    ``get_record`` before treating this as fatal.
    """

    kind = ErrorKind.RECORD_DELETION_FAILED

    def __init__(self, domain: str, record_ids: list[str], detail: str = ""):
        self.domain = domain
        self.record_ids = list(record_ids)
        super().__init__(
            f"Failed to delete record(s) {', '.join(self.record_ids)} in {domain}",
            detail,
        )


class UnknownProvider(DnsProviderException):
    """No adapter is registered under the requested name."""

    kind = ErrorKind.UNKNOWN_PROVIDER

    def __init__(self, name: str, available: Iterable[str] = ()):
        self.name = name
        self.available = sorted(available)
        detail = f"available: {', '.join(self.available)}" if self.available else ""
        super().__init__(f"Unknown DNS provider '{name}'", detail)


def redact(text: str, secrets: Iterable[str]) -> str:
    """Mask the given secret values in text.

    Secrets shorter than SHORT_SECRET_LENGTH are only masked where they
    stand alone, so they do not shred ordinary words.
    """
    for secret in secrets:
        if not secret:
            continue
        if len(secret) >= SHORT_SECRET_LENGTH:
            text = text.replace(secret, REDACTED)
        else:
            text = re.sub(rf"(?<!\w){re.escape(secret)}(?!\w)", REDACTED, text)
    return text


@contextmanager
def normalize_errors(
    provider: str,
    on_rejection: Callable[[str], DnsProviderException],
    *,
    transport: tuple[type[BaseException], ...],
    rejection: tuple[type[BaseException], ...],
    describe: Callable[[BaseException], str],
    secrets: Iterable[str] = (),
) -> Iterator[None]:
    """Translate vendor and transport exceptions into the taxonomy.

    Args:
        provider: Provider name used for connection failures
        on_rejection: Builds the operation-specific exception from a detail
        transport: Exception types meaning the vendor was not reached
        rejection: Exception types meaning the vendor refused or garbled a call
        describe: Turns a caught exception into human readable detail
        secrets: Sensitive config values to mask in the detail
    """
    try:
        yield
    except DnsProviderException:
        raise
    # Rejections first: a rejection type may subclass a transport base
    except rejection as e:
        detail = redact(describe(e), secrets)
        error = on_rejection(detail)
        logger.warning("%s: %s", error.kind.value, error)
        raise error from e
    except transport as e:
        detail = redact(describe(e), secrets)
        logger.warning("%s transport error: %s", provider, detail)
        raise ConnectionFailed(provider, detail) from e
