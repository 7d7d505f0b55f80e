#!/usr/bin/env python
"""
AWS signing exceptions.
"""

class SigningError(Exception):
    """
    Base class for errors raised while signing a request. No signature is
    produced when one of these is raised.
    """
    pass

class InvalidRequestError(SigningError, ValueError):
    """
    The request to be signed is malformed: the URL cannot be parsed, the path
    contains an invalid percent-encoding or escapes the root, or the request
    timestamp is unusable.
    """
    pass

class AmbiguousHeaderError(InvalidRequestError):
    """
    Two header names are identical after lower-casing but carry different
    values.
    """
    pass

class ConfigurationError(SigningError):
    """
    The signer is missing required configuration: an empty access key id or
    secret key, or an empty region or service name.
    """
    pass

# Local variables:
# mode: Python
# tab-width: 8
# indent-tabs-mode: nil
# End:
# vi: set expandtab tabstop=8
