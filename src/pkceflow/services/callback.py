"""Identity provider redirect parsing."""

from __future__ import annotations

import logging
from urllib.parse import parse_qs, urlparse

from pkceflow.models.errors import MalformedCallbackError
from pkceflow.models.flow import CallbackFailure, CallbackOutcome, CallbackSuccess

logger = logging.getLogger(__name__)


class CallbackParser:
    """Turns a redirect URL into a ``CallbackOutcome``.

    Only the query component is inspected, with standard query-string parsing,
    so parameter order and the presence of ``state`` do not matter. The caller
    is expected to have checked that the URL belongs to the configured
    redirect URI and to verify ``state`` itself if it sends one.
    """

    def parse(self, redirect_url: str) -> CallbackOutcome:
        try:
            query_params = parse_qs(urlparse(redirect_url).query)
        except ValueError as e:
            logger.warning(f"Unparseable callback URL: {e}")
            return CallbackFailure(
                error_code=MalformedCallbackError.error_code, is_malformed=True
            )

        # Extract single values from query parameter lists
        def get_single_param(key: str) -> str | None:
            values = query_params.get(key, [])
            return values[0] if values else None

        code = get_single_param("code")
        state = get_single_param("state")

        if code is not None:
            return CallbackSuccess(authorization_code=code, state=state)

        error = get_single_param("error")
        if error is not None:
            return CallbackFailure(
                error_code=error,
                error_description=get_single_param("error_description"),
                state=state,
            )

        logger.warning("Callback URL missing both code and error")
        return CallbackFailure(
            error_code=MalformedCallbackError.error_code, state=state, is_malformed=True
        )
