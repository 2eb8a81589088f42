"""
Freshservice REST client.

Implements the ticket operations the sync engine needs on top of the
Freshservice v2 API, authenticating with the API key as basic-auth user.
"""

from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from api_utils import disable_insecure_warnings, send_request, validate_api_response
from errors import RemoteError
from models import Agent, Ticket
from models.utils import encode_filter_query


class FreshserviceClient:
    """
    Freshservice API client.

    Args:
        domain: Freshservice host, e.g. "acme.freshservice.com"
        api_key: Agent API key
        fetch_query: Filter expression selecting the tickets to sync
        timeout: Per-request timeout in seconds
        verify_ssl: Verify TLS certificates
        session: Optional pre-built requests.Session
    """

    def __init__(
        self,
        domain: str,
        api_key: str,
        fetch_query: str = "",
        timeout: int = 30,
        verify_ssl: bool = True,
        session: Optional[requests.Session] = None,
    ):
        if not domain or not api_key:
            raise ValueError("Freshservice domain and API key are required.")

        domain = domain.replace("https://", "").replace("http://", "").rstrip("/")
        self.base_url = f"https://{domain}"
        self.fetch_query = fetch_query
        self.timeout = timeout
        self.verify_ssl = verify_ssl

        self.session = session or requests.Session()
        self.session.auth = (api_key, "X")
        self.session.headers.update({"Content-Type": "application/json"})
        disable_insecure_warnings(verify_ssl)

    def _get(self, operation: str, url: str) -> Any:
        response = send_request(
            operation,
            lambda: self.session.get(url, timeout=self.timeout, verify=self.verify_ssl),
        )
        return validate_api_response(response, operation)

    def fetch_page(self, page: int, per_page: int) -> List[Ticket]:
        """
        Fetch one page of tickets matching the filter expression.

        Args:
            page (int): 1-based page number
            per_page (int): Page size

        Returns:
            list: Tickets on the page; empty when the filter is exhausted
        """
        logger.info("Fetching tickets from Freshservice: Page {}, Per Page: {}", page, per_page)
        logger.debug("Using fetch query: {}", self.fetch_query)

        url = (
            f"{self.base_url}/api/v2/tickets/filter"
            f"?page={page}&per_page={per_page}&query={encode_filter_query(self.fetch_query)}"
        )
        data = self._get(f"Fetch tickets page {page}", url) or {}

        tickets = [Ticket.from_fs_data(raw) for raw in data.get("tickets") or []]
        logger.info("Fetched tickets page {} with {} tickets.", page, len(tickets))
        return tickets

    def fetch_detail(self, ticket_id: int) -> Ticket:
        """Fetch a ticket with its requester, tags, department and attachments."""
        url = f"{self.base_url}/api/v2/tickets/{ticket_id}?include=tags,requester,department"
        data = self._get(f"Fetch ticket {ticket_id}", url) or {}

        raw_ticket = data.get("ticket")
        if not raw_ticket:
            raise RemoteError(f"Ticket {ticket_id} missing from Freshservice response", data=data)
        return Ticket.from_fs_data(raw_ticket)

    def fetch_agent(self, agent_id: int) -> Optional[Agent]:
        """Fetch a Freshservice agent by id."""
        data = self._get(f"Fetch agent {agent_id}", f"{self.base_url}/api/v2/agents/{agent_id}") or {}
        return Agent.from_fs_data(data.get("agent"))

    def update_ticket(self, ticket_id: int, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update a ticket.

        Args:
            ticket_id (int): Ticket to update
            body (dict): Update body (top-level fields plus ``custom_fields``)

        Returns:
            dict: Updated ticket payload
        """
        operation = f"Update ticket {ticket_id}"
        url = f"{self.base_url}/api/v2/tickets/{ticket_id}"
        response = send_request(
            operation,
            lambda: self.session.put(url, json=body, timeout=self.timeout, verify=self.verify_ssl),
        )
        data = validate_api_response(response, operation) or {}
        return data.get("ticket", data)

    def fetch_attachment_bytes(self, url: str) -> bytes:
        """Download attachment content (absolute URL from the ticket payload)."""
        operation = "Download attachment"
        response = send_request(
            operation,
            lambda: self.session.get(url, timeout=self.timeout, verify=self.verify_ssl),
        )
        if response.status_code != 200:
            raise RemoteError(f"{operation} failed. Status code: {response.status_code}", status=response.status_code)
        return response.content
