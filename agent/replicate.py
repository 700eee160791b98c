"""
Replicate prediction API client.

    POST /predictions          create a prediction, returns {"id": ..., ...}
    GET  /predictions/{id}     fetch status / output

Both calls authenticate with `Authorization: Token <api token>`.
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from config import DEFAULT_API_URL, DEFAULT_MODEL_VERSION
from models.job import Prediction

logger = logging.getLogger(__name__)

# Fixed generation parameters sent with every prediction
NUM_INFERENCE_STEPS = 30
GUIDANCE_SCALE = 7.5
WIDTH = 1024
HEIGHT = 1024


class ReplicateClient:
    def __init__(
        self,
        api_token: str,
        model_version: str = DEFAULT_MODEL_VERSION,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.model_version = model_version
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Token {api_token}"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ReplicateClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def build_payload(self, prompt: str) -> dict:
        return {
            "version": self.model_version,
            "input": {
                "prompt": prompt,
                "num_inference_steps": NUM_INFERENCE_STEPS,
                "guidance_scale": GUIDANCE_SCALE,
                "width": WIDTH,
                "height": HEIGHT,
            },
        }

    async def create_prediction(self, prompt: str) -> Prediction:
        """
        Submit a prediction. Rejected requests are not raised here: Replicate
        answers them with an error body that carries no `id`, which the caller
        treats as a failed submission.
        """
        resp = await self._http.post("/predictions", json=self.build_payload(prompt))
        try:
            body = resp.json()
        except ValueError:
            logger.error(
                "Prediction create returned non-JSON body",
                extra={"http_status": resp.status_code},
            )
            return Prediction()

        if not isinstance(body, dict):
            return Prediction()

        try:
            prediction = Prediction.model_validate(body)
        except ValidationError:
            prediction = Prediction()

        if not prediction.id:
            logger.error(
                "Error creating prediction",
                extra={"http_status": resp.status_code, "body": body},
            )
        return prediction

    async def get_prediction(self, prediction_id: str) -> Prediction:
        """Fetch a prediction. Non-2xx responses raise httpx.HTTPStatusError."""
        resp = await self._http.get(f"/predictions/{prediction_id}")
        resp.raise_for_status()
        return Prediction.model_validate(resp.json())
