"""
Code runner client - the boundary to the sandboxed executor

The engine never executes learner code itself. Isolation, resource limits
and timeouts belong to the runner service; this client only ships code and
inputs over HTTP and normalizes whatever comes back.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

import httpx

from codequest.config import settings
from codequest.schemas.grading import ExecutionResult

logger = logging.getLogger(__name__)


class CodeRunner(ABC):
    """Executes code once per input and reports a result for every input"""

    @abstractmethod
    async def execute(
        self,
        code: str,
        inputs: Sequence[Any],
        language: str = "python",
    ) -> List[ExecutionResult]:
        """
        Run code against each input

        Implementations must not raise for execution problems; they report
        an ExecutionResult with error set instead.
        """


class HttpCodeRunner(CodeRunner):
    """
    Client for a remote runner service

    POST {base_url}/execute
        {"language": ..., "code": ..., "inputs": [...]}
    ->  {"results": [{"output": ..., "error": null}, ...]}
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def execute(
        self,
        code: str,
        inputs: Sequence[Any],
        language: str = "python",
    ) -> List[ExecutionResult]:
        inputs = list(inputs)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/execute",
                    json={"language": language, "code": code, "inputs": inputs},
                    headers={"X-API-Key": self.api_key} if self.api_key else {},
                )
        except httpx.TimeoutException:
            logger.warning(f"Code runner timed out after {self.timeout}s")
            return self._all_failed(len(inputs), "Execution timed out")
        except httpx.HTTPError as e:
            logger.error(f"Code runner unreachable: {str(e)}")
            return self._all_failed(len(inputs), "Code runner unavailable")

        if response.status_code != 200:
            logger.error(f"Code runner returned HTTP {response.status_code}")
            return self._all_failed(len(inputs), f"Code runner error (HTTP {response.status_code})")

        try:
            payload = response.json()
            raw_results = payload.get("results", [])
        except (ValueError, AttributeError):
            logger.error("Code runner returned an unreadable response")
            return self._all_failed(len(inputs), "Unreadable code runner response")

        return self._normalize(raw_results, len(inputs))

    def _normalize(self, raw_results: Any, expected: int) -> List[ExecutionResult]:
        """Coerce the runner payload to exactly one result per input"""
        if not isinstance(raw_results, list):
            return self._all_failed(expected, "Unreadable code runner response")

        results = []
        for raw in raw_results[:expected]:
            if isinstance(raw, dict):
                results.append(ExecutionResult(output=raw.get("output"), error=raw.get("error")))
            else:
                results.append(ExecutionResult(error="Malformed result entry"))

        if len(results) < expected:
            logger.warning(f"Code runner returned {len(results)} results for {expected} inputs")
            results.extend(self._all_failed(expected - len(results), "No result returned"))

        return results

    @staticmethod
    def _all_failed(count: int, error: str) -> List[ExecutionResult]:
        return [ExecutionResult(error=error) for _ in range(count)]


_runner: Optional[CodeRunner] = None


def get_code_runner() -> CodeRunner:
    """FastAPI dependency returning the configured runner"""
    global _runner
    if _runner is None:
        _runner = HttpCodeRunner(
            base_url=settings.CODE_RUNNER_URL,
            api_key=settings.CODE_RUNNER_API_KEY,
            timeout=settings.CODE_RUNNER_TIMEOUT,
        )
    return _runner
