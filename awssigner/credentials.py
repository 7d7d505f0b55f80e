"""
AWS credentials used to sign requests.
"""
from logging import getLogger
from os import environ as os_environ

from .exc import ConfigurationError

# Standard AWS environment variables
_aws_access_key_id = "AWS_ACCESS_KEY_ID"
_aws_secret_access_key = "AWS_SECRET_ACCESS_KEY"
_aws_session_token = "AWS_SESSION_TOKEN"

log = getLogger("awssigner.credentials")

def redact(value, visible=4):
    """
    redact(value, visible=4) -> str

    Mask all but the first `visible` characters of a value for logging.
    Short values are masked entirely.
    """
    if not value:
        return ""

    if len(value) <= visible * 2:
        return "*" * len(value)

    return value[:visible] + "*" * (len(value) - visible)

class Credentials(object):
    """
    A long-term AWS access key pair, optionally with a session token from
    STS. The secret key and token are never included in repr() output.
    """
    __slots__ = ("_access_key_id", "_secret_access_key", "_session_token")

    def __init__(self, access_key_id, secret_access_key, session_token=None):
        super(Credentials, self).__init__()
        for name, value in (("access_key_id", access_key_id),
                            ("secret_access_key", secret_access_key)):
            if value is None or value == "":
                raise ConfigurationError("%s must not be empty" % name)
            if not isinstance(value, str):
                raise TypeError("Expected %s to be a string." % name)

        if session_token is not None and not isinstance(session_token, str):
            raise TypeError("Expected session_token to be a string.")

        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self._session_token = session_token or None

    @classmethod
    def from_environment(cls, environ=None):
        """
        Credentials.from_environment(environ=None) -> Credentials

        Read AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY and (optionally)
        AWS_SESSION_TOKEN from the given mapping, or from os.environ.
        """
        if environ is None:
            environ = os_environ

        access_key_id = environ.get(_aws_access_key_id)
        secret_access_key = environ.get(_aws_secret_access_key)

        if not access_key_id or not secret_access_key:
            raise ConfigurationError(
                "%s and %s must both be set" %
                (_aws_access_key_id, _aws_secret_access_key))

        log.debug("Loaded credentials for access key %s from environment",
                  redact(access_key_id))
        return cls(access_key_id, secret_access_key,
                   environ.get(_aws_session_token))

    @property
    def access_key_id(self):
        """
        The public access key id (AKID...).
        """
        return self._access_key_id

    @property
    def secret_access_key(self):
        """
        The secret access key. Never log this.
        """
        return self._secret_access_key

    @property
    def session_token(self):
        """
        The STS session token, or None for long-term credentials.
        """
        return self._session_token

    def __eq__(self, other):
        if not isinstance(other, Credentials):
            return NotImplemented

        return (self._access_key_id == other._access_key_id and
                self._secret_access_key == other._secret_access_key and
                self._session_token == other._session_token)

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    def __repr__(self):
        return "Credentials(access_key_id=%r, secret_access_key='****'%s)" % (
            redact(self._access_key_id),
            ", session_token='****'" if self._session_token else "")

# Local variables:
# mode: Python
# tab-width: 8
# indent-tabs-mode: nil
# End:
# vi: set expandtab tabstop=8
