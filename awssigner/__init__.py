#!/usr/bin/env python
"""
AWS SigV4 request signing.
"""

from .credentials import Credentials
from .exc import (
    AmbiguousHeaderError, ConfigurationError, InvalidRequestError,
    SigningError)
from .keys import SigningKeyCache, derive_signing_key
from .sigv4 import AWSSigV4Signer, SignatureResult, sign_request

# Local variables:
# mode: Python
# tab-width: 8
# indent-tabs-mode: nil
# End:
# vi: set expandtab tabstop=8
