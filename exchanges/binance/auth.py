"""
Request Pre-processor

Every outgoing request passes through RequestPreprocessor.process() right
before it is handed to the connection pool:

    classify -> strip tag -> (maybe) attach API key -> (maybe) sign

Classification:
    - PUBLIC:       forwarded as-is, never carries the API key or a signature
    - API_KEY_ONLY: X-MBX-APIKEY header attached
    - SIGNED:       X-MBX-APIKEY header attached and `signature` appended
                    as the last query parameter

A missing tag is treated as PUBLIC. Missing credentials for a tagged
request raise AuthenticationError before anything touches the network.

The pre-processor holds one credential pair and no other state, so it is
safe to call from any thread or task. Never share one instance between
different credential pairs.
"""

from core.exceptions import AuthenticationError, SigningError
from core.schemas import ApiCredentials, ApiRequest, Classification
from exchanges.binance.signer import encode_query, sign

API_KEY_HEADER = "X-MBX-APIKEY"
SIGNATURE_PARAM = "signature"


class RequestPreprocessor:
    """
    Classifies, authenticates and signs requests for one credential pair.

    Attributes:
        credentials: The credential pair this instance is bound to

    Example:
        >>> pre = RequestPreprocessor(ApiCredentials(api_key="k", secret_key="s"))
        >>> req = ApiRequest(method="GET", path="/api/v3/account",
        ...                  params=(("timestamp", "1499827319559"),),
        ...                  classification=Classification.SIGNED)
        >>> pre.process(req).params[-1][0]
        'signature'
    """

    def __init__(self, credentials: ApiCredentials = None):
        self.credentials = credentials or ApiCredentials()

    def process(self, request: ApiRequest) -> ApiRequest:
        """
        Return the wire-ready version of a request.

        Args:
            request: Request descriptor stamped with a classification

        Returns:
            New ApiRequest without classification, with auth applied

        Raises:
            AuthenticationError: Required API key or secret key is empty
            SigningError: The request already carries a signature, or the
                          encoded result does not extend the signed payload
        """
        classification = request.classification
        if classification is None:
            classification = Classification.PUBLIC

        headers = {
            name: value for name, value in request.headers.items()
            if name.lower() != API_KEY_HEADER.lower()
        }
        params = request.params
        signed = False

        if classification >= Classification.API_KEY_ONLY:
            api_key = self.credentials.api_key.get_secret_value()
            if not api_key:
                raise AuthenticationError(
                    f"{request.method} {request.path} requires an API key"
                )
            headers[API_KEY_HEADER] = api_key

        if classification == Classification.SIGNED:
            secret = self.credentials.secret_key.get_secret_value()
            if not secret:
                raise AuthenticationError(
                    f"{request.method} {request.path} requires a secret key"
                )
            if any(name == SIGNATURE_PARAM for name, _ in params):
                raise SigningError(f"{request.method} {request.path} is already signed")

            payload = encode_query(params)
            # Empty query: the exchange accepts the call unsigned
            if payload:
                signature = sign(payload, secret)
                params = params + ((SIGNATURE_PARAM, signature),)
                if encode_query(params) != f"{payload}&{SIGNATURE_PARAM}={signature}":
                    raise SigningError(
                        f"Canonical query for {request.path} changed after signing"
                    )
            signed = True

        return request.model_copy(
            update={
                "headers": headers,
                "params": params,
                "classification": None,
                "signed": signed,
            }
        )
