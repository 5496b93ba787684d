import logging
import requests

from ainews.exceptions import TransportError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10

HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


def get_json(url, params, timeout=DEFAULT_TIMEOUT):
    """
    Issue a single GET against a news provider.

    Args:
        url (str): Endpoint URL
        params (dict): Query parameters, API key included
        timeout (float): Seconds before the request is abandoned

    Returns:
        dict: Decoded JSON body

    Raises:
        TransportError: timeout or connection failure
        UpstreamError: non-2xx status or a body that is not JSON
    """
    try:
        response = requests.get(url, params=params, headers=HEADERS, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.Timeout as e:
        raise TransportError(f"Request to {url} timed out") from e
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        raise UpstreamError(f"{url} answered {status}", status_code=status) from e
    except requests.exceptions.RequestException as e:
        raise TransportError(f"Request to {url} failed: {e}") from e

    try:
        return response.json()
    except ValueError as e:
        raise UpstreamError(f"{url} returned a non-JSON body", status_code=response.status_code) from e
