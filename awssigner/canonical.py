"""
SigV4 canonical request construction.

The canonical request is:
    method + '\\n' +
    canonical_uri_path + '\\n' +
    canonical_query_string + '\\n' +
    canonical_headers + '\\n' +
    signed_headers + '\\n' +
    sha256(body).hexdigest()

where canonical_headers carries its own trailing newline. See
http://docs.aws.amazon.com/general/latest/gr/sigv4-create-canonical-request.html
"""
from collections import OrderedDict, namedtuple
from hashlib import sha256
from io import BytesIO
from logging import getLogger
from re import compile as re_compile
from string import ascii_letters, digits
from urllib.parse import urlsplit

from .credentials import redact
from .exc import AmbiguousHeaderError, InvalidRequestError

# pylint: disable=C0103

# Unreserved bytes from RFC 3986.
_rfc3986_unreserved = frozenset((ascii_letters + digits + "-._~")
                                .encode("utf-8"))

# ASCII code for '%'
_ascii_percent = ord(b"%")

# ASCII code for '+'
_ascii_plus = ord(b"+")

_authorization = "authorization"

# Headers whose values are masked when the canonical request is logged.
_secret_headers = frozenset(["x-amz-security-token"])

# Exactly two hex digits following a percent sign.
_hex_pair = re_compile(rb"^[0-9A-Fa-f]{2}$")

# Default ports, omitted from the Host header.
_default_ports = {
    "http": 80,
    "https": 443,
}

# SHA-256 digest of an empty string
SHA256_EMPTY_DIGEST = (
    "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855")

# Match for multiple slashes
_multislash = re_compile(r"//+")

# Header field names are RFC 7230 tokens.
_header_token = re_compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

log = getLogger("awssigner.canonical")

class CanonicalRequest(namedtuple(
        "CanonicalRequest", ["method", "canonical_path", "canonical_query",
                             "canonical_headers", "signed_header_names",
                             "payload_hash"])):
    """
    The canonicalized parts of a request. str() gives the canonical request
    text that is hashed into the string to sign.
    """
    __slots__ = ()

    def __str__(self):
        return "\n".join([
            self.method,
            self.canonical_path,
            self.canonical_query,
            self.canonical_headers,
            self.signed_header_names,
            self.payload_hash])

def _percent_escape_value(component, i):
    """
    The byte value of the percent escape at component[i], raising
    InvalidRequestError unless it is '%' followed by exactly two hex digits.
    """
    escape = component[i+1:i+3]
    if not _hex_pair.match(escape):
        raise InvalidRequestError(
            "Invalid %% encoding at position %d: %r" %
            (i, component.decode("utf-8", "replace")))
    return int(escape, 16)

def normalize_uri_path_component(path_component, plus_is_space=False):
    """
    normalize_uri_path_component(path_component, plus_is_space=False) -> str

    Normalize the path component according to RFC 3986.  This performs the
    following operations:
    * Alpha, digit, and the symbols '-', '.', '_', and '~' (unreserved
      characters) are left alone.
    * Characters outside this range are percent-encoded.
    * Percent-encoded values are upper-cased ('%2a' becomes '%2A')
    * Percent-encoded values in the unreserved space (%41-%5A, %61-%7A,
      %30-%39, %2D, %2E, %5F, %7E) are converted to normal characters.
    * If plus_is_space is set (form-encoded query strings), '+' becomes
      '%20'; otherwise it is a literal '+' and becomes '%2B'.

    If a percent encoding is incomplete, the percent is encoded as %25.

    An InvalidRequestError is raised if a percent encoding is not followed by
    two hex digits (e.g. %3z or %-1).
    """
    result = BytesIO()

    i = 0
    path_component = path_component.encode("utf-8")
    while i < len(path_component):
        c = path_component[i]
        if c in _rfc3986_unreserved:
            result.write(bytes((c,)))
            i += 1
        elif c == _ascii_percent:
            if i + 2 >= len(path_component):
                result.write(b"%25")
                i += 1
                continue

            value = _percent_escape_value(path_component, i)
            if value in _rfc3986_unreserved:
                result.write(bytes((value,)))
            else:
                result.write(("%%%02X" % value).encode("ascii"))

            i += 3
        elif c == _ascii_plus and plus_is_space:
            result.write(b"%20")
            i += 1
        else:
            result.write(("%%%02X" % c).encode("ascii"))
            i += 1

    return result.getvalue().decode("ascii")

def encode_uri_path_component(path_component):
    """
    encode_uri_path_component(path_component) -> str

    Percent-encode every byte of an (already URL-encoded) path component
    outside the RFC 3986 unreserved set, including '%' itself, so that
    'my%20file' becomes 'my%2520file'. This is the second encoding pass
    applied to paths for every service except S3.

    An InvalidRequestError is raised if a percent encoding is not followed by
    two hex digits; an incomplete one at the end is encoded as %25.
    """
    result = BytesIO()

    path_component = path_component.encode("utf-8")
    for i, c in enumerate(path_component):
        if c in _rfc3986_unreserved:
            result.write(bytes((c,)))
            continue

        if c == _ascii_percent and i + 2 < len(path_component):
            _percent_escape_value(path_component, i)

        result.write(("%%%02X" % c).encode("ascii"))

    return result.getvalue().decode("ascii")

def get_canonical_uri_path(uri_path, double_encode=True):
    """
    get_canonical_uri_path(uri_path, double_encode=True) -> str

    Canonicalize the URI path of a request.

    With double_encode (every service but S3), redundant slashes and
    relative path components are removed and each segment of the
    URL-encoded path is encoded again: '/docs/my%20file.pdf' becomes
    '/docs/my%2520file.pdf'.

    Without it (S3), slashes and dots are preserved and each segment is
    normalized and encoded once.

    An InvalidRequestError is raised if:
    * The URI path is not empty and not absolute (does not start with '/').
    * A parent relative path element ('..') attempts to go beyond the top.
    * An invalid percent-encoding is encountered.
    """
    if uri_path == "" or uri_path == "/":
        return "/"

    if not uri_path.startswith("/"):
        raise InvalidRequestError("URI path is not absolute: %r" % uri_path)

    if not double_encode:
        # Do *not* handle ., .., etc; these are valid in S3 keys.
        return "/".join(
            [normalize_uri_path_component(el) for el in uri_path.split("/")])

    uri_path = _multislash.sub("/", uri_path)

    components = uri_path.split("/")[1:]
    i = 0
    while i < len(components):
        if components[i] == ".":
            # Don't advance; the next element has moved into slot i.
            del components[i]
        elif components[i] == "..":
            if i == 0:
                raise InvalidRequestError(
                    "URI path attempts to go beyond root")
            del components[i-1:i+1]
            i -= 1
        else:
            i += 1

    return "/" + "/".join(
        [encode_uri_path_component(el) for el in components])

def normalize_query_parameters(query_string):
    """
    normalize_query_parameters(query_string) -> list

    Converts a query string into a list of (key, value) tuples with both
    parts normalized to RFC 3986 encoding, sorted by key and then by value.
    '+' is taken as an encoded space. A parameter without '=' gets an empty
    value; empty components are skipped.

    An InvalidRequestError is raised if a percent encoding is invalid.
    """
    result = []

    for component in query_string.split("&"):
        if component == "":
            continue

        key, _, value = component.partition("=")
        result.append(
            (normalize_uri_path_component(key, plus_is_space=True),
             normalize_uri_path_component(value, plus_is_space=True)))

    result.sort()
    return result

def get_canonical_query_string(query_string):
    """
    get_canonical_query_string(query_string) -> str

    The canonical form of a raw query string: normalized key=value pairs in
    sorted order, joined with '&'.
    """
    return "&".join(
        ["%s=%s" % item for item in normalize_query_parameters(query_string)])

def _header_values(name, value):
    if isinstance(value, str):
        return [value]

    try:
        hv_iter = iter(value)
    except TypeError:
        raise TypeError(
            "Header %r value must be a string or an iterable of strings: %r" %
            (name, type(value).__name__))

    values = []
    for i, el in enumerate(hv_iter):
        if not isinstance(el, str):
            raise TypeError("Header %r value %d must be a string: %r" %
                            (name, i, type(el).__name__))
        values.append(el)
    return values

def canonicalize_headers(headers):
    """
    canonicalize_headers(headers) -> OrderedDict

    Lower-case the header names, strip leading and trailing whitespace from
    the values, and return them sorted by name. A header given as an iterable
    of values has them joined with ','. Any Authorization header is dropped.

    An AmbiguousHeaderError is raised if two names are equal after
    lower-casing but their values differ. An InvalidRequestError is raised
    for a name that is not an HTTP token or a value with a line break.
    """
    if headers is None:
        return OrderedDict()

    # pylint: disable=E1101
    try:
        items = headers.items()
    except AttributeError:
        raise TypeError("Expected headers to be a mapping.")

    result = {}
    for key, value in items:
        if not isinstance(key, str):
            raise TypeError("Header must be a string: %r" % (key,))

        name = key.strip().lower()
        if not _header_token.match(name):
            raise InvalidRequestError("Invalid header name: %r" % (key,))

        if name == _authorization:
            continue

        value = ",".join([v.strip() for v in _header_values(key, value)])
        if "\n" in value or "\r" in value:
            raise InvalidRequestError(
                "Header %r value contains a line break" % (key,))

        if name in result and result[name] != value:
            raise AmbiguousHeaderError(
                "Header %r given more than once with different values" % name)

        result[name] = value

    return OrderedDict(sorted(result.items()))

def hash_payload(body):
    """
    hash_payload(body) -> str

    The hex SHA-256 digest of the request body. str bodies are UTF-8 encoded;
    None is treated as an empty body.
    """
    if body is None:
        body = b""
    elif isinstance(body, str):
        body = body.encode("utf-8")
    elif isinstance(body, (bytearray, memoryview)):
        body = bytes(body)
    elif not isinstance(body, bytes):
        raise TypeError("Expected body to be bytes or str: %r" %
                        type(body).__name__)

    return sha256(body).hexdigest()

def split_url(url):
    """
    split_url(url) -> SplitResult

    Parse an absolute URL, raising InvalidRequestError if it has no scheme
    or host or its port is not a number.
    """
    if not isinstance(url, str):
        raise TypeError("Expected url to be a string.")

    try:
        parts = urlsplit(url)
        # Accessing .port validates it.
        parts.port
    except ValueError as e:
        raise InvalidRequestError("Invalid URL %r: %s" % (url, e))

    if not parts.scheme or not parts.hostname:
        raise InvalidRequestError("URL is not absolute: %r" % url)

    return parts

def host_from_url(url):
    """
    host_from_url(url) -> str

    The value for the Host header: the lower-cased host name, with the port
    only if it is not the scheme's default. IPv6 literals are bracketed.
    """
    parts = split_url(url)
    host = parts.hostname
    if ":" in host:
        host = "[%s]" % host

    port = parts.port
    if port is not None and port != _default_ports.get(parts.scheme.lower()):
        host = "%s:%d" % (host, port)

    return host

def redacted_canonical_request(canonical_request):
    """
    redacted_canonical_request(canonical_request) -> CanonicalRequest

    A copy of the canonical request, for logging, with the values of secret
    headers (the session token) masked. Never hash the result.
    """
    lines = []
    for line in canonical_request.canonical_headers.splitlines(True):
        name, _, value = line.partition(":")
        if name in _secret_headers:
            line = "%s:%s\n" % (name, redact(value.rstrip("\n")))
        lines.append(line)

    return canonical_request._replace(canonical_headers="".join(lines))

def build_canonical_request(method, url, headers, body,
                            double_encode_path=True):
    """
    build_canonical_request(method, url, headers, body,
                            double_encode_path=True) -> CanonicalRequest

    Canonicalize a request. Every header passed in is signed; the caller is
    responsible for including Host and X-Amz-Date. double_encode_path must be
    False only for S3; see get_canonical_uri_path.
    """
    if not isinstance(method, str):
        raise TypeError("Expected method to be a string.")

    method = method.strip().upper()
    if not method:
        raise InvalidRequestError("HTTP method must not be empty")

    parts = split_url(url)
    canonical_path = get_canonical_uri_path(parts.path, double_encode_path)
    canonical_query = get_canonical_query_string(parts.query)

    signed = canonicalize_headers(headers)
    header_lines = "".join(["%s:%s\n" % item for item in signed.items()])
    signed_header_names = ";".join(signed.keys())

    assert list(signed.keys()) == [
        line.split(":", 1)[0] for line in header_lines.splitlines()], \
        "signed header list does not match canonical headers"

    result = CanonicalRequest(
        method=method,
        canonical_path=canonical_path,
        canonical_query=canonical_query,
        canonical_headers=header_lines,
        signed_header_names=signed_header_names,
        payload_hash=hash_payload(body))

    log.debug("CanonicalRequest:\n%s", redacted_canonical_request(result))
    return result

# Local variables:
# mode: Python
# tab-width: 8
# indent-tabs-mode: nil
# End:
# vi: set expandtab tabstop=8
