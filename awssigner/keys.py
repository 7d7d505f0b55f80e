"""
SigV4 signing key derivation.

The signing key is derived from the secret key by a chain of HMAC-SHA256
operations, each keyed by the output of the previous one:

    kDate    = HMAC("AWS4" + secret_key, date_stamp)
    kRegion  = HMAC(kDate, region)
    kService = HMAC(kRegion, service)
    kSigning = HMAC(kService, "aws4_request")
"""
from collections import OrderedDict
from hashlib import sha256
import hmac
from logging import getLogger
from re import compile as re_compile
from threading import Lock

from .exc import ConfigurationError

_aws4 = b"AWS4"
_aws4_request = "aws4_request"

_date_stamp_regex = re_compile(r"^[0-9]{8}$")

log = getLogger("awssigner.keys")

def hmac_sha256(key, msg):
    """
    HMAC-SHA256 of a UTF-8 encoded message; returns the raw 32-byte digest.
    """
    return hmac.new(key, msg.encode("utf-8"), sha256).digest()

def _check_scope(date_stamp, region, service):
    if not isinstance(date_stamp, str) or not _date_stamp_regex.match(
            date_stamp):
        raise ValueError("date_stamp must be YYYYMMDD: %r" % (date_stamp,))

    for name, value in (("region", region), ("service", service)):
        if not isinstance(value, str):
            raise TypeError("Expected %s to be a string." % name)
        if not value:
            raise ConfigurationError("%s must not be empty" % name)

def _check_secret_key(secret_key):
    if secret_key is None or secret_key == "":
        raise ConfigurationError("secret key must not be empty")
    if not isinstance(secret_key, str):
        raise TypeError("Expected secret_key to be a string.")

def signing_key_chain(secret_key, date_stamp, region, service):
    """
    signing_key_chain(secret_key, date_stamp, region, service) -> list

    The HMAC chain as an ordered list of (key, message) links. Each link's
    key is the digest of the previous link; the first is keyed by
    "AWS4" + secret_key. HMAC of the last link is the signing key.
    """
    _check_secret_key(secret_key)
    _check_scope(date_stamp, region, service)

    messages = (date_stamp, region, service, _aws4_request)
    chain = [(_aws4 + secret_key.encode("utf-8"), messages[0])]

    for msg in messages[1:]:
        chain.append((hmac_sha256(*chain[-1]), msg))

    return chain

def derive_signing_key(secret_key, date_stamp, region, service):
    """
    derive_signing_key(secret_key, date_stamp, region, service) -> bytes

    Derive the 32-byte SigV4 signing key for a single credential scope.
    """
    return hmac_sha256(
        *signing_key_chain(secret_key, date_stamp, region, service)[-1])

class SigningKeyCache(object):
    """
    A thread-safe cache of derived signing keys keyed by credential scope and
    a hash of the secret key. Caching only saves the four HMAC operations; a
    cached key is byte-identical to a freshly derived one.

    Storing a key for a newer date evicts all keys for older dates.
    """

    def __init__(self, max_entries=64):
        super(SigningKeyCache, self).__init__()
        if not isinstance(max_entries, int) or max_entries < 1:
            raise ValueError("max_entries must be a positive integer.")

        self._max_entries = max_entries
        self._keys = OrderedDict()
        self._latest_date = None
        self._lock = Lock()

    def __len__(self):
        with self._lock:
            return len(self._keys)

    @property
    def max_entries(self):
        """
        The maximum number of keys held at once.
        """
        return self._max_entries

    def clear(self):
        """
        Drop every cached key.
        """
        with self._lock:
            self._keys.clear()
            self._latest_date = None

    def get_signing_key(self, secret_key, date_stamp, region, service):
        """
        get_signing_key(secret_key, date_stamp, region, service) -> bytes

        Return the signing key for this scope, deriving and caching it if
        needed.
        """
        _check_secret_key(secret_key)

        cache_key = (date_stamp, region, service,
                     sha256(secret_key.encode("utf-8")).digest())

        with self._lock:
            signing_key = self._keys.get(cache_key)
            if signing_key is not None:
                self._keys.move_to_end(cache_key)
                return signing_key

        signing_key = derive_signing_key(
            secret_key, date_stamp, region, service)

        with self._lock:
            if self._latest_date is not None and date_stamp < self._latest_date:
                return signing_key

            if self._latest_date != date_stamp:
                stale = [k for k in self._keys if k[0] != date_stamp]
                for k in stale:
                    del self._keys[k]
                if stale:
                    log.debug("Evicted %d signing keys older than %s",
                              len(stale), date_stamp)
                self._latest_date = date_stamp

            self._keys[cache_key] = signing_key
            while len(self._keys) > self._max_entries:
                self._keys.popitem(last=False)

        return signing_key

# Local variables:
# mode: Python
# tab-width: 8
# indent-tabs-mode: nil
# End:
# vi: set expandtab tabstop=8
