"""Autonomi Bridge - HTTP client for archiving directories on the Autonomi network."""
import logging
import os
from datetime import date as Date
from typing import Any, Dict, List, Optional, Union

import requests

from perpetual_storage.exceptions import (
    InvalidArgumentError,
    RemoteError,
    ResponseParseError,
)
from perpetual_storage.schemas import ArchiveOperationResult, OperationType
from perpetual_storage.utils.decorators import log_remote_call

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 120.0
DEFAULT_STATS_DAYS = 30


class AutonomiBridge:
    """HTTP client for the directory endpoints of the Autonomi API.

    The bridge keeps no per-call state: each call is one request, sent once.
    Nothing is retried or cached, and uploading the same directory twice
    creates two archives. The session is created once and reused.
    """

    UPLOAD_ROUTE = "/dirs/upload"
    DOWNLOAD_ROUTE = "/dirs/download"
    TRANSACTIONS_ROUTE = "/dirs/transactions"
    STATS_ROUTE = "/dirs/stats"

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the bridge.

        Args:
            api_url: Base URL of the Autonomi API
            timeout: Per-request timeout in seconds
            session: Optional pre-configured session
        """
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

        logger.info(f"AutonomiBridge initialized for {self.api_url} (timeout {self.timeout}s)")

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "AutonomiBridge":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # HTTP plumbing

    def _request(self, method: str, route: str, **kwargs) -> requests.Response:
        """Send one request; transport failures and error statuses become RemoteError."""
        url = f"{self.api_url}{route}"
        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response
        except requests.RequestException as e:
            status_code = e.response.status_code if e.response is not None else None
            raise RemoteError(f"Error connecting to Autonomi API: {e}", status_code=status_code) from e

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ResponseParseError(f"Error decoding API response: {e}") from e

    @staticmethod
    def _archive_result(payload: Any) -> ArchiveOperationResult:
        if not isinstance(payload, dict):
            raise ResponseParseError(
                f"Error decoding API response: expected a JSON object, got {type(payload).__name__}"
            )
        return ArchiveOperationResult.model_validate(payload)

    # Directory operations

    @log_remote_call
    def upload_directory(self, directory_path: Union[str, os.PathLike], is_public: bool = False) -> ArchiveOperationResult:
        """Upload a local directory to the Autonomi network.

        Args:
            directory_path: Absolute path of an existing local directory
            is_public: Make the archive publicly retrievable

        Returns:
            Status and cost, plus a data map (private) or public address (public)

        Raises:
            InvalidArgumentError: If the path is not an existing directory
            RemoteError: If the API cannot be reached or rejects the request
            ResponseParseError: If the API answers with something other than a JSON object
        """
        directory_path = os.fspath(directory_path)
        if not os.path.isdir(directory_path):
            raise InvalidArgumentError.not_a_directory(directory_path)

        response = self._request(
            "POST",
            self.UPLOAD_ROUTE,
            files={
                "directory_path": (None, directory_path),
                "public": (None, "true" if is_public else "false"),
            },
        )
        return self._archive_result(self._decode(response))

    @log_remote_call
    def download_directory(
        self,
        destination_path: Union[str, os.PathLike],
        data_map: Optional[str] = None,
        public_address: Optional[str] = None,
    ) -> ArchiveOperationResult:
        """Download an archived directory from the Autonomi network.

        Args:
            destination_path: Local path the directory is written to
            data_map: Retrieval key of a private archive
            public_address: Retrieval key of a public archive

        At least one key is required. When both are given both are sent and
        the API decides which one wins.
        """
        if not data_map and not public_address:
            raise InvalidArgumentError.missing_key()

        multipart = {"destination_path": (None, os.fspath(destination_path))}
        if data_map:
            multipart["data_map"] = (None, data_map)
        if public_address:
            multipart["public_address"] = (None, public_address)

        response = self._request("POST", self.DOWNLOAD_ROUTE, files=multipart)
        return self._archive_result(self._decode(response))

    @log_remote_call
    def get_directory_transactions(
        self,
        date: Optional[Union[str, Date]] = None,
        operation_type: Optional[Union[OperationType, str]] = None,
    ) -> Union[List[Dict[str, Any]], Dict[str, Any]]:
        """Get the history of directory uploads and downloads.

        Args:
            date: Only transactions of this day (YYYY-MM-DD)
            operation_type: Only "upload" or "download" transactions

        Filters left out are not sent at all. The records are returned as the
        API sent them.
        """
        params = {}
        if date:
            params["date"] = date.strftime("%Y-%m-%d") if isinstance(date, Date) else date
        if operation_type:
            params["operation_type"] = (
                operation_type.value if isinstance(operation_type, OperationType) else operation_type
            )

        response = self._request("GET", self.TRANSACTIONS_ROUTE, params=params)
        return self._decode(response)

    @log_remote_call
    def get_directory_stats(self, days: int = DEFAULT_STATS_DAYS) -> Dict[str, Any]:
        """Get statistics of directory operations over the last `days` days (1-365).

        The range is enforced by the API, not here.
        """
        response = self._request("GET", self.STATS_ROUTE, params={"days": days})
        return self._decode(response)
