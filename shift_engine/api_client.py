"""
API-backed assignment repository
Stores shift assignments in a remote scheduling service over JSON/HTTP

Endpoints (relative to base_url):
  GET    /shifts?userId=<id>   list (optionally one staff member)
  GET    /shifts/<id>          fetch one (404 → None)
  POST   /shifts               create
  PUT    /shifts/<id>          replace
  DELETE /shifts/<id>          remove (404 → False)
"""

import logging
from typing import Dict, List, Optional

import requests

from shift_engine.models import ShiftAssignment
from shift_engine.repository import AssignmentRepository
from shift_engine.schedule_config import API_BASE_URL, API_KEY, API_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class ApiAssignmentRepository(AssignmentRepository):
    """
    AssignmentRepository over a REST API
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        api_key: str = API_KEY,
        timeout: float = API_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client

        Args:
            base_url: Base URL of the scheduling API
            api_key: Bearer token (omitted from headers when empty)
            timeout: Per-request timeout in seconds
            session: Pre-built session (tests inject a mock)
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

        self.session = session or requests.Session()
        headers = {'Content-Type': 'application/json'}
        if api_key:
            headers['Authorization'] = f'Bearer {api_key}'
        self.session.headers.update(headers)

    def _url(self, assignment_id: Optional[str] = None) -> str:
        if assignment_id is None:
            return f"{self.base_url}/shifts"
        return f"{self.base_url}/shifts/{assignment_id}"

    def get(self, assignment_id: str) -> Optional[ShiftAssignment]:
        try:
            response = self.session.get(self._url(assignment_id), timeout=self.timeout)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return ShiftAssignment.from_dict(response.json())

        except requests.exceptions.RequestException as e:
            logger.error(f"Error fetching shift {assignment_id}: {e}")
            raise

    def list(self, user_id: Optional[str] = None) -> List[ShiftAssignment]:
        params: Dict[str, str] = {}
        if user_id is not None:
            params['userId'] = user_id

        try:
            response = self.session.get(self._url(), params=params, timeout=self.timeout)
            response.raise_for_status()

            data = response.json()
            logger.debug(f"Retrieved {len(data)} shifts (userId={user_id})")
            return [ShiftAssignment.from_dict(entry) for entry in data]

        except requests.exceptions.RequestException as e:
            logger.error(f"Error listing shifts: {e}")
            raise

    def add(self, assignment: ShiftAssignment) -> ShiftAssignment:
        try:
            response = self.session.post(self._url(), json=assignment.to_dict(), timeout=self.timeout)
            response.raise_for_status()

            logger.info(f"Created shift {assignment.id} remotely")
            return ShiftAssignment.from_dict(response.json())

        except requests.exceptions.RequestException as e:
            logger.error(f"Error creating shift {assignment.id}: {e}")
            raise

    def update(self, assignment: ShiftAssignment) -> ShiftAssignment:
        try:
            response = self.session.put(
                self._url(assignment.id), json=assignment.to_dict(), timeout=self.timeout
            )
            response.raise_for_status()

            logger.info(f"Updated shift {assignment.id} remotely")
            return ShiftAssignment.from_dict(response.json())

        except requests.exceptions.RequestException as e:
            logger.error(f"Error updating shift {assignment.id}: {e}")
            raise

    def delete(self, assignment_id: str) -> bool:
        try:
            response = self.session.delete(self._url(assignment_id), timeout=self.timeout)
            if response.status_code == 404:
                return False
            response.raise_for_status()

            logger.info(f"Deleted shift {assignment_id} remotely")
            return True

        except requests.exceptions.RequestException as e:
            logger.error(f"Error deleting shift {assignment_id}: {e}")
            raise
