# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import datetime
import hmac
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from hashlib import sha256
from urllib.parse import parse_qsl, quote, urlencode

from ._http import Field, Fields, SignableRequest, URI
from .exceptions import (
    ClockUnavailableError,
    ExpiredIdentityError,
    MissingRequiredFieldError,
)
from .interfaces import CredentialsIdentity

logger = logging.getLogger(__name__)

HEADERS_EXCLUDED_FROM_SIGNING: tuple[str, ...] = (
    "accept",
    "accept-encoding",
    "authorization",
    "connection",
    "expect",
    "user-agent",
    "x-amzn-trace-id",
)
DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}

SIGV4_ALGORITHM: str = "AWS4-HMAC-SHA256"
SIGV4_TIMESTAMP_FORMAT: str = "%Y%m%dT%H%M%SZ"
UNSIGNED_PAYLOAD: str = "UNSIGNED-PAYLOAD"
EMPTY_SHA256_HASH = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

# Presigned requests may not be valid for longer than seven days.
MAX_EXPIRES_IN: int = 604800


class ChecksumPolicy(Enum):
    """Whether the payload hash is also sent as ``X-Amz-Content-SHA256``."""

    NO_CHECKSUM = "none"
    X_AMZ_SHA256 = "x-amz-sha256"


class SignatureLocation(Enum):
    """Where the signature is placed on the request."""

    HEADERS = "headers"
    """In the ``Authorization`` header."""

    QUERY_STRING = "query-string"
    """In ``X-Amz-*`` query parameters, as for a presigned URL."""


class InstructionLocation(Enum):
    HEADER = 0
    QUERY = 1


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


@dataclass(kw_only=True, frozen=True)
class SigningSettings:
    """Signing configuration shared by every request on a route."""

    region: str
    service_name: str
    checksum_policy: ChecksumPolicy = ChecksumPolicy.NO_CHECKSUM
    signature_location: SignatureLocation = SignatureLocation.HEADERS
    uri_encode_path: bool = True
    expires_in: int = 3600
    clock: Callable[[], datetime.datetime] = field(
        default=_utc_now, compare=False, repr=False
    )

    def __post_init__(self) -> None:
        if not 1 <= self.expires_in <= MAX_EXPIRES_IN:
            raise ValueError(
                f"expires_in must be between 1 and {MAX_EXPIRES_IN} seconds, "
                f"got {self.expires_in}."
            )


@dataclass(frozen=True)
class SigningInstruction:
    """A single header or query parameter to place on the outgoing request."""

    name: str
    value: str
    location: InstructionLocation = InstructionLocation.HEADER


@dataclass(kw_only=True, frozen=True)
class SigningOutput:
    instructions: tuple[SigningInstruction, ...]
    """Everything that must be applied to the request, in application order."""

    signature: str
    """The hex encoded signature. Diagnostic only."""

    canonical_request: str = field(default="", repr=False)
    string_to_sign: str = field(default="", repr=False)

    @property
    def headers(self) -> list[SigningInstruction]:
        return [
            i for i in self.instructions if i.location is InstructionLocation.HEADER
        ]

    @property
    def query_params(self) -> list[SigningInstruction]:
        return [
            i for i in self.instructions if i.location is InstructionLocation.QUERY
        ]


class SigV4Signer:
    """Computes AWS Signature Version 4 signatures.

    The signer holds no state, so a single instance may be shared across any number
    of concurrent requests.
    """

    def sign(
        self,
        *,
        identity: CredentialsIdentity,
        settings: SigningSettings,
        request: SignableRequest,
        now: datetime.datetime | None = None,
    ) -> SigningOutput:
        """Compute a signature for ``request`` and the instructions that carry it.

        The supplied request is never modified.

        :param identity: The credentials to derive the signing key from.
        :param settings: Region, service and signing options for the route.
        :param request: The method, destination, fields and body bytes to sign.
        :param now: The signing time. When not given, ``settings.clock`` is read
            exactly once.
        :raises MissingRequiredFieldError: A credential or scope value is missing.
        :raises ClockUnavailableError: No signing timestamp could be obtained.
        :raises ExpiredIdentityError: The identity expired before ``now``.
        """
        self._validate(identity=identity, settings=settings)
        timestamp = self._resolve_timestamp(settings=settings, now=now)
        if identity.expiration is not None and timestamp >= identity.expiration:
            raise ExpiredIdentityError(
                f"Provided identity expired at {identity.expiration}. Please "
                "refresh the credentials or update the expiration parameter."
            )

        date = timestamp.strftime(SIGV4_TIMESTAMP_FORMAT)
        scope = self._scope(date=date, settings=settings)
        credential = f"{identity.access_key_id}/{scope}"
        body_hash = self._hash_body(request.body)

        header_instructions: list[SigningInstruction] = []
        query_instructions: list[SigningInstruction] = []
        presigned = settings.signature_location is SignatureLocation.QUERY_STRING

        if not presigned:
            header_instructions.append(SigningInstruction("X-Amz-Date", date))
            if identity.session_token is not None:
                header_instructions.append(
                    SigningInstruction("X-Amz-Security-Token", identity.session_token)
                )
        if settings.checksum_policy is ChecksumPolicy.X_AMZ_SHA256:
            header_instructions.append(
                SigningInstruction("X-Amz-Content-SHA256", body_hash)
            )

        fields = request.fields.copy()
        for instruction in header_instructions:
            fields.set_field(Field(name=instruction.name, values=[instruction.value]))
        signed_headers = ";".join(self._normalize_signing_fields(request, fields))

        destination = request.destination
        if presigned:
            query_instructions = [
                SigningInstruction(name, value, InstructionLocation.QUERY)
                for name, value in (
                    ("X-Amz-Algorithm", SIGV4_ALGORITHM),
                    ("X-Amz-Credential", credential),
                    ("X-Amz-Date", date),
                    ("X-Amz-Expires", str(settings.expires_in)),
                    ("X-Amz-SignedHeaders", signed_headers),
                )
            ]
            if identity.session_token is not None:
                query_instructions.append(
                    SigningInstruction(
                        "X-Amz-Security-Token",
                        identity.session_token,
                        InstructionLocation.QUERY,
                    )
                )
            destination = append_query_params(
                destination, [(i.name, i.value) for i in query_instructions]
            )

        signing_request = replace(request, destination=destination, fields=fields)
        canonical_request = self.canonical_request(
            settings=settings, request=signing_request, payload_hash=body_hash
        )
        string_to_sign = self.string_to_sign(
            canonical_request=canonical_request, date=date, scope=scope
        )
        # The canonical request can carry the session token, so only its hash, inside
        # the string to sign, is logged.
        logger.debug("Signed headers: %s", signed_headers)
        logger.debug("String to sign:\n%s", string_to_sign)
        signature = self._signature(
            string_to_sign=string_to_sign,
            secret_key=identity.secret_access_key,
            date=date,
            settings=settings,
        )

        if presigned:
            query_instructions.append(
                SigningInstruction(
                    "X-Amz-Signature", signature, InstructionLocation.QUERY
                )
            )
        else:
            header_instructions.append(
                SigningInstruction(
                    "Authorization",
                    self.authorization_value(
                        credential=credential,
                        signed_headers=signed_headers,
                        signature=signature,
                    ),
                )
            )

        return SigningOutput(
            instructions=(*header_instructions, *query_instructions),
            signature=signature,
            canonical_request=canonical_request,
            string_to_sign=string_to_sign,
        )

    def authorization_value(
        self, *, credential: str, signed_headers: str, signature: str
    ) -> str:
        """Generate the value of the ``Authorization`` header.

        :param credential: ``<access_key>/<date>/<region>/<service>/aws4_request``
        :param signed_headers: Semicolon separated names of the signed fields.
        :param signature: Final hash of the SigV4 signing algorithm.
        """
        return (
            f"{SIGV4_ALGORITHM} Credential={credential}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )

    def canonical_request(
        self,
        *,
        settings: SigningSettings,
        request: SignableRequest,
        payload_hash: str | None = None,
    ) -> str:
        """The canonical request is a standardized string laying out the components used
        in the SigV4 signing algorithm. This is useful to quickly compare inputs to find
        signature mismatches and unintended variances.

        The SigV4 specification defines the canonical request to be:
            <HTTPMethod>\n
            <CanonicalURI>\n
            <CanonicalQueryString>\n
            <CanonicalHeaders>\n
            <SignedHeaders>\n
            <HashedPayload>

        :param settings: The signing settings of the route.
        :param request: The request, already carrying every field to be signed.
        :param payload_hash: The SHA-256 hex digest of the body, if already known.
        """
        if payload_hash is None:
            payload_hash = self._hash_body(request.body)
        if (
            settings.signature_location is SignatureLocation.QUERY_STRING
            and settings.checksum_policy is ChecksumPolicy.NO_CHECKSUM
        ):
            payload_hash = UNSIGNED_PAYLOAD

        canonical_path = self._format_canonical_path(
            path=request.destination.path, settings=settings
        )
        canonical_query = self._format_canonical_query(query=request.destination.query)
        normalized_fields = self._normalize_signing_fields(request, request.fields)
        canonical_fields = "".join(
            f"{key}:{value}\n" for key, value in normalized_fields.items()
        )
        return (
            f"{request.method.upper()}\n"
            f"{canonical_path}\n"
            f"{canonical_query}\n"
            f"{canonical_fields}\n"
            f"{';'.join(normalized_fields)}\n"
            f"{payload_hash}"
        )

    def string_to_sign(self, *, canonical_request: str, date: str, scope: str) -> str:
        """The string to sign is the second step of our signing algorithm which
        concatenates the formal identifier of our signing algorithm, the signing
        DateTime, the scope of our credentials, and a hash of our previously generated
        canonical request.

        The SigV4 specification defines the string to sign as:
            Algorithm \n
            RequestDateTime \n
            CredentialScope  \n
            HashedCanonicalRequest
        """
        return (
            f"{SIGV4_ALGORITHM}\n"
            f"{date}\n"
            f"{scope}\n"
            f"{sha256(canonical_request.encode()).hexdigest()}"
        )

    def _signature(
        self,
        *,
        string_to_sign: str,
        secret_key: str,
        date: str,
        settings: SigningSettings,
    ) -> str:
        """Sign the string to sign.

        In SigV4, a signing key is created that is scoped to a specific region and
        service. The date, region, service and resulting signing key are individually
        hashed, then the composite hash is used to sign the string to sign.
        """

        # Components of Signing Key Calculation
        #
        # DateKey              = HMAC-SHA256("AWS4"+"<SecretAccessKey>", "<YYYYMMDD>")
        # DateRegionKey        = HMAC-SHA256(<DateKey>, "<aws-region>")
        # DateRegionServiceKey = HMAC-SHA256(<DateRegionKey>, "<aws-service>")
        # SigningKey = HMAC-SHA256(<DateRegionServiceKey>, "aws4_request")
        k_date = self._hash(key=f"AWS4{secret_key}".encode(), value=date[0:8])
        k_region = self._hash(key=k_date, value=settings.region)
        k_service = self._hash(key=k_region, value=settings.service_name)
        k_signing = self._hash(key=k_service, value="aws4_request")

        return self._hash(key=k_signing, value=string_to_sign).hex()

    def _hash(self, key: bytes, value: str) -> bytes:
        return hmac.new(key=key, msg=value.encode(), digestmod=sha256).digest()

    def _hash_body(self, body: bytes) -> str:
        if not body:
            return EMPTY_SHA256_HASH
        return sha256(body).hexdigest()

    def _validate(
        self, *, identity: CredentialsIdentity, settings: SigningSettings
    ) -> None:
        if not isinstance(identity, CredentialsIdentity):  # pyright: ignore
            raise MissingRequiredFieldError(
                "Received unexpected value for identity parameter. Expected "
                f"a credentials identity but received {type(identity)}."
            )
        missing = [
            name
            for name, value in (
                ("access_key_id", identity.access_key_id),
                ("secret_access_key", identity.secret_access_key),
                ("region", settings.region),
                ("service_name", settings.service_name),
            )
            if not value
        ]
        if missing:
            raise MissingRequiredFieldError(
                f"Cannot sign request, missing required values: {', '.join(missing)}."
            )

    def _resolve_timestamp(
        self, *, settings: SigningSettings, now: datetime.datetime | None
    ) -> datetime.datetime:
        if now is None:
            try:
                now = settings.clock()
            except Exception as e:
                raise ClockUnavailableError(
                    f"The signing clock failed to produce a timestamp: {e}"
                ) from e
        if not isinstance(now, datetime.datetime):
            raise ClockUnavailableError(
                f"Expected the signing clock to return a datetime, got {type(now)}."
            )
        if now.tzinfo is None:
            return now.replace(tzinfo=datetime.UTC)
        return now.astimezone(datetime.UTC)

    def _scope(self, *, date: str, settings: SigningSettings) -> str:
        # Scope format: <YYYYMMDD>/<Region>/<Service>/aws4_request
        return f"{date[0:8]}/{settings.region}/{settings.service_name}/aws4_request"

    def _format_canonical_path(
        self, *, path: str | None, settings: SigningSettings
    ) -> str:
        if not path:
            path = "/"

        if settings.uri_encode_path:
            normalized_path = _remove_dot_segments(path)
            return quote(string=normalized_path, safe="/")
        else:
            return _remove_dot_segments(path, remove_consecutive_slashes=False)

    def _format_canonical_query(self, *, query: str | None) -> str:
        if not query:
            return ""

        query_params = parse_qsl(qs=query, keep_blank_values=True)
        query_parts = (
            (quote(string=key, safe=""), quote(string=value, safe=""))
            for key, value in query_params
        )
        # key-value pairs must be in sorted order for their encoded forms.
        return "&".join(f"{key}={value}" for key, value in sorted(query_parts))

    def _normalize_signing_fields(
        self, request: SignableRequest, fields: Fields
    ) -> dict[str, str]:
        normalized_fields = {
            fld.name.lower(): ",".join(" ".join(value.split()) for value in fld.values)
            for fld in fields
            if fld.name.lower() not in HEADERS_EXCLUDED_FROM_SIGNING
        }
        if "host" not in normalized_fields:
            normalized_fields["host"] = self._normalize_host_field(
                uri=request.destination
            )

        return dict(sorted(normalized_fields.items()))

    def _normalize_host_field(self, *, uri: URI) -> str:
        if uri.port is not None and DEFAULT_PORTS.get(uri.scheme) == uri.port:
            return uri.host
        return uri.netloc


def append_query_params(uri: URI, params: list[tuple[str, str]]) -> URI:
    """Return a copy of ``uri`` with ``params`` appended to its query."""
    if not params:
        return uri
    # Spaces must be encoded as %20, never "+", to match the canonical query.
    addition = urlencode(params, quote_via=quote, safe="")
    query = f"{uri.query}&{addition}" if uri.query else addition
    return replace(uri, query=query)


def _remove_dot_segments(path: str, remove_consecutive_slashes: bool = True) -> str:
    """Removes dot segments from a path per :rfc:`3986#section-5.2.4`.

    Optionally removes consecutive slashes, true by default.
    :param path: The path to modify.
    :param remove_consecutive_slashes: Whether to remove consecutive slashes.
    :returns: The path with dot segments removed.
    """
    output: list[str] = []
    for segment in path.split("/"):
        if segment == ".":
            continue
        elif segment != "..":
            output.append(segment)
        elif output:
            output.pop()
    if path.startswith("/") and (not output or output[0]):
        output.insert(0, "")
    if output and path.endswith(("/.", "/..")):
        output.append("")
    result = "/".join(output)
    if remove_consecutive_slashes:
        result = result.replace("//", "/")
    return result
