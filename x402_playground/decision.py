"""
Decision-query collaborator used by ``llm_agent`` actions.

The playground does not run models itself. It asks an agent service for a
decision and, when that service cannot answer, the agent executor falls back
to a deterministic heuristic.
"""
import logging
import urllib.parse
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .exceptions import DecisionQueryError
from .utils import redact_prompt

logger = logging.getLogger(__name__)

DEFAULT_AGENT_ID = "risk-analyzer"


class DecisionResponse(BaseModel):
    """Answer of the agent service."""
    model_config = ConfigDict(populate_by_name=True)

    response: Any = None
    execution_time: Optional[Union[int, float]] = Field(0, alias="executionTime")


class DecisionClient(ABC):
    """Abstract base class for decision-query clients."""

    @abstractmethod
    def query(
        self,
        prompt: str,
        context: Optional[str] = None,
        agent_id: str = DEFAULT_AGENT_ID,
    ) -> DecisionResponse:
        """
        Ask an agent for a decision.

        Args:
            prompt: Question for the agent
            context: Extra context appended to the prompt
            agent_id: Agent to ask

        Returns:
            The agent's response

        Raises:
            DecisionQueryError: If the agent cannot answer
        """
        pass


def build_query(prompt: str, context: Optional[str] = None) -> str:
    if not context:
        return prompt
    return f"{prompt}\n\nContext: {context}"


class HttpDecisionClient(DecisionClient):
    """
    Client for the agent service's HTTP query endpoint.

    POSTs ``{"query": ...}`` to ``<base_url>/api/agents/<agent_id>/query``
    and reads ``data.response`` and ``data.executionTime`` from the reply.
    """

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        retry_count: int = 3,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the client.

        Args:
            base_url: Agent service URL (e.g., "https://agents.example.com")
            timeout: Timeout for HTTP requests in seconds
            retry_count: Number of retries for transient server errors
            session: Preconfigured session (a retrying one is built if omitted)
            logger: Optional logger instance

        Raises:
            ValueError: If the URL doesn't use https (unless it's localhost/127.0.0.1)
        """
        parsed = urllib.parse.urlparse(base_url)
        host = parsed.netloc.split(':')[0]
        if parsed.scheme != 'https' and host not in ('localhost', '127.0.0.1'):
            raise ValueError(f"base_url must use https:// for security (got: {parsed.scheme}://)")

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

        if session is None:
            session = requests.Session()
            retries = Retry(
                total=retry_count,
                backoff_factor=0.5,
                status_forcelist=[500, 502, 503, 504],
                allowed_methods=["POST"],
                raise_on_status=False,
                connect=retry_count,
                read=retry_count,
            )
            session.mount("http://", HTTPAdapter(max_retries=retries))
            session.mount("https://", HTTPAdapter(max_retries=retries))
        self.session = session

    def query(
        self,
        prompt: str,
        context: Optional[str] = None,
        agent_id: str = DEFAULT_AGENT_ID,
    ) -> DecisionResponse:
        payload = {"query": build_query(prompt, context)}
        url = f"{self.base_url}/api/agents/{urllib.parse.quote(agent_id, safe='')}/query"
        self.logger.debug(f"Querying agent {agent_id}: {redact_prompt(payload)}")

        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise DecisionQueryError(f"Agent query failed: {str(e)}")

        if not response.ok:
            raise DecisionQueryError(f"Agent query failed: {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise DecisionQueryError(f"Invalid JSON response from agent: {str(e)}")

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise DecisionQueryError(f"Missing data in agent response: {body}")

        try:
            return DecisionResponse.model_validate(data)
        except ValidationError as e:
            raise DecisionQueryError(f"Malformed agent response: {str(e)}")


class StubDecisionClient(DecisionClient):
    """
    Canned decision client.

    Args:
        response: Response returned for every query
        error: When set, every query raises DecisionQueryError with it
        execution_time: Reported execution time in ms
    """

    def __init__(
        self,
        response: Any = "execute",
        error: Optional[str] = None,
        execution_time: int = 0,
    ):
        self.response = response
        self.error = error
        self.execution_time = execution_time
        self.queries: List[Dict[str, Any]] = []

    def query(
        self,
        prompt: str,
        context: Optional[str] = None,
        agent_id: str = DEFAULT_AGENT_ID,
    ) -> DecisionResponse:
        self.queries.append({"prompt": prompt, "context": context, "agent_id": agent_id})
        if self.error is not None:
            raise DecisionQueryError(self.error)
        return DecisionResponse(response=self.response, execution_time=self.execution_time)
