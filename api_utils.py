"""
Shared HTTP helpers for the Freshservice and Azure DevOps clients.
"""

from typing import Any, Callable, List, Optional

import requests
import urllib3
from loguru import logger

from errors import RemoteError


def disable_insecure_warnings(verify_ssl: bool) -> None:
    """Silence urllib3 warnings when certificate verification is turned off."""
    if not verify_ssl:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)


def validate_api_response(
    response: requests.Response,
    operation_name: str,
    expected_status_codes: Optional[List[int]] = None,
) -> Any:
    """
    Validate an API response and return its decoded JSON body.

    Args:
        response: requests.Response object
        operation_name (str): Name of the operation for logging
        expected_status_codes (list): List of acceptable status codes

    Returns:
        The decoded JSON body, or None for an empty body

    Raises:
        RemoteError: On an unexpected status code or an undecodable body
    """
    # Avoid mutable default argument
    if expected_status_codes is None:
        expected_status_codes = [200]

    if response.status_code not in expected_status_codes:
        error_msg = f"{operation_name} failed. Status code: {response.status_code}"
        logger.error(error_msg)
        logger.error("Response: {}", response.text)
        raise RemoteError(error_msg, status=response.status_code, data=_response_data(response))

    if not response.content:
        return None

    try:
        data = response.json()
    except ValueError as e:
        error_msg = f"Failed to parse JSON response for {operation_name}: {e}"
        logger.error(error_msg)
        raise RemoteError(error_msg, status=response.status_code, data=response.text) from e

    logger.debug("{} successful. Status code: {}", operation_name, response.status_code)
    return data


def send_request(operation_name: str, request: Callable[[], requests.Response]) -> requests.Response:
    """
    Run one HTTP call, turning transport failures into RemoteError.

    Args:
        operation_name (str): Name of the operation for logging
        request: Zero-argument callable performing the request
    """
    try:
        return request()
    except requests.exceptions.Timeout as e:
        error_msg = f"Timeout error during {operation_name}: {e}"
        logger.error("{}", error_msg)
        raise RemoteError(error_msg) from e
    except requests.exceptions.ConnectionError as e:
        error_msg = f"Connection error during {operation_name}: {e}"
        logger.error("{}", error_msg)
        raise RemoteError(error_msg) from e
    except requests.exceptions.RequestException as e:
        error_msg = f"Request error during {operation_name}: {e}"
        logger.error("{}", error_msg)
        raise RemoteError(error_msg) from e


def _response_data(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
