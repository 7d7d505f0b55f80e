"""
SigV4 request signing routines.
"""

from collections import OrderedDict, namedtuple
from datetime import datetime
from hashlib import sha256
import hmac
from logging import getLogger

from .canonical import build_canonical_request, canonicalize_headers, \
    host_from_url
from .credentials import Credentials, redact
from .dateutil import format_amz_date, format_date_stamp, parse_timestamp, \
    to_utc, utc_now
from .exc import AmbiguousHeaderError, ConfigurationError, InvalidRequestError
from .keys import SigningKeyCache, derive_signing_key

# pylint: disable=C0103

# Algorithm for AWS SigV4
AWS4_HMAC_SHA256 = "AWS4-HMAC-SHA256"

# Defaults for the API Gateway deployment this signer fronts.
DEFAULT_REGION = "us-gov-west-1"
DEFAULT_SERVICE = "execute-api"

# Header names (lower-cased for canonical lookups)
_aws4_request = "aws4_request"
_authorization = "Authorization"
_date = "date"
_host = "host"
_host_header = "Host"
_x_amz_date = "X-Amz-Date"
_x_amz_date_lower = "x-amz-date"
_x_amz_security_token = "X-Amz-Security-Token"
_x_amz_security_token_lower = "x-amz-security-token"

# S3 paths are encoded once; every other service encodes them twice.
_s3 = "s3"

# Logging instance
log = getLogger("awssigner.sigv4")

def get_credential_scope(date_stamp, region, service):
    """
    get_credential_scope(date_stamp, region, service) -> str

    The credential scope: date_stamp/region/service/aws4_request.
    """
    return "/".join([date_stamp, region, service, _aws4_request])

def build_string_to_sign(amz_date, credential_scope, canonical_request):
    """
    build_string_to_sign(amz_date, credential_scope, canonical_request) -> str

    The AWS SigV4 string being signed:
        AWS4-HMAC-SHA256 + '\\n' +
        amz_date + '\\n' +
        credential_scope + '\\n' +
        sha256(canonical_request).hexdigest()
    """
    return "\n".join([
        AWS4_HMAC_SHA256,
        amz_date,
        credential_scope,
        sha256(str(canonical_request).encode("utf-8")).hexdigest()])

def compute_signature(signing_key, string_to_sign):
    """
    compute_signature(signing_key, string_to_sign) -> str

    The lower-case hex HMAC-SHA256 of the string to sign.
    """
    return hmac.new(signing_key, string_to_sign.encode("utf-8"),
                    sha256).hexdigest()

class SignatureResult(namedtuple(
        "SignatureResult",
        ["authorization", "amz_date", "host", "security_token"])):
    """
    The headers that authenticate a signed request. They must be sent
    together; use headers or apply_to() rather than picking fields.
    """
    __slots__ = ()

    @property
    def headers(self):
        """
        An ordered mapping of the signing headers.
        """
        result = OrderedDict([
            (_authorization, self.authorization),
            (_x_amz_date, self.amz_date),
            (_host_header, self.host),
        ])

        if self.security_token:
            result[_x_amz_security_token] = self.security_token

        return result

    def apply_to(self, headers):
        """
        apply_to(headers) -> dict

        Return a copy of headers with every signing header merged in.
        Existing headers with the same name, in any letter case, are
        replaced.
        """
        signing_headers = self.headers
        replaced = set([name.lower() for name in signing_headers])
        result = OrderedDict([
            (name, value) for name, value in (headers or {}).items()
            if name.lower() not in replaced])
        result.update(signing_headers)
        return result

    def __repr__(self):
        return ("SignatureResult(authorization=%r, amz_date=%r, host=%r%s)" %
                (self.authorization, self.amz_date, self.host,
                 ", security_token='****'" if self.security_token else ""))

def assemble_authorization(access_key_id, credential_scope,
                           signed_header_names, signature, amz_date, host,
                           security_token=None):
    """
    assemble_authorization(access_key_id, credential_scope,
                           signed_header_names, signature, amz_date, host,
                           security_token=None) -> SignatureResult

    Package the signature into the Authorization header alongside the
    X-Amz-Date and Host headers it was computed over.
    """
    if not access_key_id:
        raise ConfigurationError("access_key_id must not be empty")

    for name, value in (("signature", signature),
                        ("host", host),
                        ("amz_date", amz_date)):
        if not value:
            raise InvalidRequestError("%s must not be empty" % name)

    authorization = "%s Credential=%s/%s, SignedHeaders=%s, Signature=%s" % (
        AWS4_HMAC_SHA256, access_key_id, credential_scope,
        signed_header_names, signature)

    return SignatureResult(
        authorization=authorization,
        amz_date=amz_date,
        host=host,
        security_token=security_token)

class AWSSigV4Signer(object):
    """
    Sign requests with AWS SigV4.
    """

    def __init__(self, **kw):
        """
        AWSSigV4Signer(
            credentials: Credentials,
            region: str="us-gov-west-1",
            service: str="execute-api",
            key_cache: Optional[SigningKeyCache]=None)

        Create a new AWSSigV4Signer instance. Properties can be specified
        as keyword arguments.

        credentials: The access key pair (and optional session token) used
            to sign requests.
        region: The AWS region (or pseudo-region) of the target service.
        service: The name of the service being signed for.
        key_cache: An optional SigningKeyCache shared between signers.
        """
        super(AWSSigV4Signer, self).__init__()
        self._credentials = None
        self._region = DEFAULT_REGION
        self._service = DEFAULT_SERVICE
        self._key_cache = None

        for key, value in kw.items():
            if key not in ("credentials", "region", "service", "key_cache"):
                raise TypeError("Unexpected keyword argument %r" % key)
            setattr(self, key, value)
        return

    @property
    def credentials(self):
        """
        The credentials used to sign requests.
        """
        return self._credentials

    @credentials.setter
    def credentials(self, value):
        if value is not None and not isinstance(value, Credentials):
            raise TypeError("Expected credentials to be a Credentials object.")

        self._credentials = value
        return

    @property
    def region(self):
        """
        The region the service is running in.
        """
        return self._region

    @region.setter
    def region(self, value):
        if not isinstance(value, str):
            raise TypeError("Expected region to be a string.")

        if not value:
            raise ConfigurationError("region must not be empty")

        self._region = value
        return

    @property
    def service(self):
        """
        The name of the service being invoked.
        """
        return self._service

    @service.setter
    def service(self, value):
        if not isinstance(value, str):
            raise TypeError("Expected service to be a string.")

        if not value:
            raise ConfigurationError("service must not be empty")

        self._service = value
        return

    @property
    def key_cache(self):
        """
        The SigningKeyCache consulted for signing keys, or None to derive a
        fresh key on every call.
        """
        return self._key_cache

    @key_cache.setter
    def key_cache(self, value):
        if value is not None and not isinstance(value, SigningKeyCache):
            raise TypeError("Expected key_cache to be a SigningKeyCache.")

        self._key_cache = value
        return

    def signing_key(self, date_stamp):
        """
        The signing key for date_stamp in this signer's region and service.
        """
        secret_key = self.credentials.secret_access_key
        if self.key_cache is not None:
            return self.key_cache.get_signing_key(
                secret_key, date_stamp, self.region, self.service)

        return derive_signing_key(
            secret_key, date_stamp, self.region, self.service)

    def sign(self, method, url, headers=None, body=b"", timestamp=None):
        """
        sign(method, url, headers=None, body=b"", timestamp=None)
            -> SignatureResult

        Sign a request. Every header passed in is signed, along with Host,
        X-Amz-Date and (for temporary credentials) X-Amz-Security-Token,
        which are added when absent.

        The request time is taken from timestamp if given (a datetime or an
        ISO 8601 / RFC 2822 string), else from the X-Amz-Date header, else
        from the Date header, else the current time.
        """
        if self.credentials is None:
            raise ConfigurationError("No credentials configured for signing")

        signed = canonicalize_headers(headers)
        request_time = _resolve_timestamp(timestamp, signed)
        amz_date = format_amz_date(request_time)
        date_stamp = format_date_stamp(request_time)

        if _x_amz_date_lower in signed:
            header_time = _resolve_timestamp(signed[_x_amz_date_lower], signed)
            if format_amz_date(header_time) != amz_date:
                raise InvalidRequestError(
                    "X-Amz-Date header %r does not match the signing time %s"
                    % (signed[_x_amz_date_lower], amz_date))
        signed[_x_amz_date_lower] = amz_date

        if _host not in signed:
            signed[_host] = host_from_url(url)

        session_token = self.credentials.session_token
        if session_token:
            if signed.get(_x_amz_security_token_lower,
                          session_token) != session_token:
                raise AmbiguousHeaderError(
                    "X-Amz-Security-Token header does not match the "
                    "credentials' session token")
            signed[_x_amz_security_token_lower] = session_token

        canonical_request = build_canonical_request(
            method, url, signed, body,
            double_encode_path=(self.service != _s3))
        credential_scope = get_credential_scope(
            date_stamp, self.region, self.service)
        string_to_sign = build_string_to_sign(
            amz_date, credential_scope, canonical_request)
        log.debug("StringToSign:\n%s", string_to_sign)

        signature = compute_signature(
            self.signing_key(date_stamp), string_to_sign)

        log.debug("Signed %s %s for access key %s (SignedHeaders=%s)",
                  canonical_request.method, canonical_request.canonical_path,
                  redact(self.credentials.access_key_id),
                  canonical_request.signed_header_names)

        return assemble_authorization(
            self.credentials.access_key_id, credential_scope,
            canonical_request.signed_header_names, signature, amz_date,
            signed[_host], session_token)

def _resolve_timestamp(timestamp, headers):
    """
    Pick the signing time from the explicit timestamp or the (canonicalized)
    request headers, falling back to the current time.
    """
    if timestamp is None:
        timestamp = headers.get(_x_amz_date_lower) or headers.get(_date)
        if timestamp is None:
            return utc_now()

    if isinstance(timestamp, datetime):
        return to_utc(timestamp)

    if not isinstance(timestamp, str):
        raise TypeError("Expected timestamp to be a datetime or string.")

    result = parse_timestamp(timestamp)
    if result is None:
        raise InvalidRequestError(
            "Timestamp is not a valid ISO 8601 or RFC 2822 string: %r" %
            timestamp)

    return to_utc(result)

def sign_request(method, url, headers, body, access_key_id, secret_access_key,
                 region=DEFAULT_REGION, service=DEFAULT_SERVICE,
                 timestamp=None, session_token=None):
    """
    sign_request(method, url, headers, body, access_key_id,
                 secret_access_key, region="us-gov-west-1",
                 service="execute-api", timestamp=None, session_token=None)
        -> SignatureResult

    Sign a single request without keeping a signer around.
    """
    signer = AWSSigV4Signer(
        credentials=Credentials(
            access_key_id, secret_access_key, session_token),
        region=region, service=service)
    return signer.sign(method, url, headers, body, timestamp)

# Local variables:
# mode: Python
# tab-width: 8
# indent-tabs-mode: nil
# End:
# vi: set expandtab tabstop=8
