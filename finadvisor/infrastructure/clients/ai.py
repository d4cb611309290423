"""Workers AI HTTP client for text generation"""

import time
import httpx
from typing import Dict, List
from finadvisor.domain.exceptions import AIServiceError
from finadvisor.config import settings
from finadvisor.infrastructure.observability.metrics import ai_failure_counter, ai_latency_histogram


class TextGenerationClient:
    """Client for the Cloudflare Workers AI REST API"""

    def __init__(
        self,
        base_url: str | None = None,
        account_id: str | None = None,
        api_token: str | None = None,
        timeout: float | None = None,
    ):
        self.base_url = base_url or settings.ai_api_base
        self.account_id = account_id or settings.ai_account_id
        self.api_token = api_token or settings.ai_api_token
        self.timeout = timeout or settings.http_timeout_seconds

    async def run(self, model: str, messages: List[Dict[str, str]], max_tokens: int = 1024) -> Dict[str, str]:
        """
        Run a chat completion and return {"response": <generated text>}.

        Raises:
            AIServiceError: On timeout, HTTP errors, or invalid response
        """
        start = time.time()
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/accounts/{self.account_id}/ai/run/{model}",
                    headers={"Authorization": f"Bearer {self.api_token}"},
                    json={"messages": messages, "max_tokens": max_tokens},
                )
                response.raise_for_status()
                data = response.json()
                return {"response": str(data["result"]["response"])}

            except httpx.TimeoutException as e:
                ai_failure_counter.inc()
                raise AIServiceError(f"AI API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                ai_failure_counter.inc()
                raise AIServiceError(f"AI API error: {e.response.status_code}") from e
            except httpx.HTTPError as e:
                ai_failure_counter.inc()
                raise AIServiceError(f"AI API request failed: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                ai_failure_counter.inc()
                raise AIServiceError(f"Invalid response from AI API: {e}") from e
            finally:
                ai_latency_histogram.observe(time.time() - start)
