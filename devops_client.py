"""
Azure DevOps REST client.

Creates, reads and patches work items and handles attachment upload and
linking through the work item tracking API.
"""

from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from api_utils import disable_insecure_warnings, send_request, validate_api_response
from errors import RemoteError
from models import PatchOperation, WorkItem, attachment_link_operation

JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"


class AzureDevOpsClient:
    """
    Azure DevOps work item client.

    Args:
        org_url: Organization or server URL, e.g. "https://devops.example.com"
        project: Team project name
        user: Basic-auth user name
        password: Password or personal access token
        work_item_type: Type used for new work items ("Bug")
        api_version: REST API version
        timeout: Per-request timeout in seconds
        verify_ssl: Verify TLS certificates
        session: Optional pre-built requests.Session
    """

    def __init__(
        self,
        org_url: str,
        project: str,
        user: str,
        password: str,
        work_item_type: str = "Bug",
        api_version: str = "7.1",
        timeout: int = 30,
        verify_ssl: bool = True,
        session: Optional[requests.Session] = None,
    ):
        if not org_url or not project:
            raise ValueError("Azure DevOps organization URL and project are required.")

        self.base_url = f"{org_url.rstrip('/')}/DefaultCollection/{project}/_apis"
        self.work_item_type = work_item_type
        self.api_version = api_version
        self.timeout = timeout
        self.verify_ssl = verify_ssl

        self.session = session or requests.Session()
        self.session.auth = (user, password)
        disable_insecure_warnings(verify_ssl)

    def _patch(self, operation: str, url: str, patch: List[PatchOperation]) -> Dict[str, Any]:
        response = send_request(
            operation,
            lambda: self.session.patch(
                url,
                json=patch,
                params={"api-version": self.api_version},
                headers={"Content-Type": JSON_PATCH_CONTENT_TYPE},
                timeout=self.timeout,
                verify=self.verify_ssl,
            ),
        )
        return validate_api_response(response, operation, [200, 201]) or {}

    def create_work_item(self, patch: List[PatchOperation]) -> WorkItem:
        """
        Create a work item from JSON Patch field operations.

        Args:
            patch (list): ``/fields/...`` add operations

        Returns:
            WorkItem: The created work item
        """
        if not isinstance(patch, list):
            raise RemoteError("`patch` operations list is required")

        url = f"{self.base_url}/wit/workitems/${self.work_item_type}"
        data = self._patch(f"Create ADO {self.work_item_type}", url, patch)
        work_item = WorkItem.from_ado_data(data)
        logger.debug("Created ADO work item {}", work_item.id)
        return work_item

    def get_work_item(self, work_item_id: int) -> WorkItem:
        """Fetch a work item with all of its fields."""
        operation = f"Fetch ADO work item {work_item_id}"
        url = f"{self.base_url}/wit/workitems/{work_item_id}"
        response = send_request(
            operation,
            lambda: self.session.get(
                url,
                params={"api-version": self.api_version},
                timeout=self.timeout,
                verify=self.verify_ssl,
            ),
        )
        return WorkItem.from_ado_data(validate_api_response(response, operation))

    def update_work_item(self, work_item_id: int, patch: List[PatchOperation]) -> WorkItem:
        """Apply JSON Patch operations to an existing work item."""
        url = f"{self.base_url}/wit/workitems/{work_item_id}"
        return WorkItem.from_ado_data(self._patch(f"Update ADO work item {work_item_id}", url, patch))

    def upload_attachment(self, name: str, content_type: str, content: bytes) -> Dict[str, Any]:
        """
        Upload a file to the attachment store.

        Args:
            name (str): File name shown on the work item
            content_type (str): Original MIME type, for logging only
            content (bytes): File content

        Returns:
            dict: ``{"id": ..., "url": ...}`` of the stored attachment
        """
        operation = f"Upload attachment {name}"
        url = f"{self.base_url}/wit/attachments"
        logger.debug("Uploading attachment {} ({}, {} bytes)", name, content_type, len(content))
        response = send_request(
            operation,
            lambda: self.session.post(
                url,
                data=content,
                params={"fileName": name, "api-version": self.api_version},
                headers={"Content-Type": "application/octet-stream"},
                timeout=self.timeout,
                verify=self.verify_ssl,
            ),
        )
        data = validate_api_response(response, operation, [200, 201]) or {}
        if not data.get("url"):
            raise RemoteError(f"{operation} returned no url", status=response.status_code, data=data)
        return {"id": data.get("id"), "url": data["url"]}

    def link_attachment(self, work_item_id: int, url: str, comment: str = "") -> WorkItem:
        """Link an uploaded attachment to a work item."""
        return self.update_work_item(work_item_id, [attachment_link_operation(url, comment)])
