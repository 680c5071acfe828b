"""
OAuth handler for Google installed-app authentication.

Builds the consent URL and talks to the Google token endpoint to exchange
authorization codes and refresh access tokens.
"""

import asyncio
import time
import urllib.parse
from typing import Dict, List, Optional

import aiohttp
import structlog

from ..exceptions import AuthError, NetworkError

logger = structlog.get_logger(__name__)

DEFAULT_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
DEFAULT_TOKEN_URL = "https://oauth2.googleapis.com/token"
DEFAULT_SCOPES = ["https://www.googleapis.com/auth/drive.file"]


class GoogleOAuthHandler:
    """Handles the OAuth2 authorization-code flow against Google."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scopes: Optional[List[str]] = None,
        auth_url: str = DEFAULT_AUTH_URL,
        token_url: str = DEFAULT_TOKEN_URL,
        timeout_seconds: float = 30.0
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = scopes or list(DEFAULT_SCOPES)
        self.auth_url = auth_url
        self.token_url = token_url
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    def get_authorization_url(self) -> str:
        """Generate the consent URL the user has to visit.

        ``access_type=offline`` and ``prompt=consent`` make Google return a
        refresh token along with the access token.
        """
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(self.scopes),
            "access_type": "offline",
            "prompt": "consent",
        }

        auth_url = f"{self.auth_url}?{urllib.parse.urlencode(params)}"

        logger.info(
            "Generated authorization URL",
            client_id=self.client_id[:8] + "...",
            scopes=self.scopes,
            redirect_uri=self.redirect_uri
        )

        return auth_url

    async def exchange_code_for_token(self, authorization_code: str) -> Dict:
        """
        Exchange an authorization code for access and refresh tokens.

        Args:
            authorization_code: The code the user copied from the consent page

        Returns:
            Token response with an added ``expires_at`` epoch timestamp

        Raises:
            AuthError: If Google rejects the code
            NetworkError: If the token endpoint cannot be reached
        """
        data = {
            "grant_type": "authorization_code",
            "code": authorization_code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
        }

        logger.info("Exchanging authorization code for tokens")
        token_data = await self._post_token_request(data, "Token exchange")

        if not token_data.get("access_token") or not token_data.get("refresh_token"):
            raise AuthError("Token exchange did not return both an access and a refresh token")

        logger.info(
            "Successfully obtained tokens",
            expires_in=token_data.get("expires_in"),
            scope=token_data.get("scope", "unknown")
        )
        return token_data

    async def refresh_access_token(self, refresh_token: str) -> Dict:
        """
        Refresh the access token using the refresh token.

        Google normally omits ``refresh_token`` from refresh responses; the
        one passed in is carried over in that case.

        Raises:
            AuthError: If the refresh token is rejected
            NetworkError: If the token endpoint cannot be reached
        """
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }

        logger.info("Refreshing access token")
        token_data = await self._post_token_request(data, "Token refresh")

        if not token_data.get("access_token"):
            raise AuthError("Token refresh did not return an access token")

        if "refresh_token" not in token_data:
            token_data["refresh_token"] = refresh_token

        logger.info("Successfully refreshed token", expires_in=token_data.get("expires_in"))
        return token_data

    async def _post_token_request(self, data: Dict[str, str], operation: str) -> Dict:
        headers = {"Content-Type": "application/x-www-form-urlencoded"}

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.token_url, headers=headers, data=data) as response:
                    if response.status == 200:
                        token_data = await response.json()
                        token_data["expires_at"] = int(time.time()) + int(token_data.get("expires_in", 3600))
                        return token_data

                    response_text = await response.text()
                    logger.error(
                        f"{operation} failed",
                        status=response.status,
                        response=response_text
                    )
                    if response.status >= 500:
                        raise NetworkError(
                            f"{operation} failed: {response.status} - {response_text}",
                            status=response.status
                        )
                    raise AuthError(f"{operation} failed: {response.status} - {response_text}")

        except aiohttp.ClientError as e:
            logger.error(f"{operation} request failed", error=str(e))
            raise NetworkError(f"{operation} request failed: {e}")
        except asyncio.TimeoutError as e:
            logger.error(f"{operation} timed out", error=str(e))
            raise NetworkError(f"{operation} timed out")
