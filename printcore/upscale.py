"""
AI upscaling through an external provider.

The provider is a slow black box: a public image URL and an integer
scale go in, a URL (or an object carrying one) comes out. Its output is
normalized in normalize_provider_output and nowhere else.

Factors:
- 2 and 4: one pass
- 8: two passes (4x then 2x) for premium sizes
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from loguru import logger

from printcore.errors import UnsupportedUpscaleFactorError, UpscaleProviderError

SUPPORTED_FACTORS = (2, 4, 8)

REPLICATE_API_URL = "https://api.replicate.com/v1/predictions"


@dataclass(frozen=True)
class UpscaleResult:
    url: str
    source_width_px: int
    source_height_px: int
    final_width_px: int
    final_height_px: int
    upscale_factor: int
    upscale_provider: str


def normalize_provider_output(output: Any, provider: str = None) -> str:
    """Return the result URL from a plain string or an object holding a URL."""
    if isinstance(output, str) and output:
        return output

    url = None
    if isinstance(output, dict):
        url = output.get("url")
    elif output is not None and hasattr(output, "url"):
        url = output.url
        if callable(url):
            url = url()

    if isinstance(url, str) and url:
        return url

    raise UpscaleProviderError(
        f"Unexpected upscaler output type: {type(output).__name__}",
        provider=provider,
        output_type=type(output).__name__,
    )


class UpscaleProvider:
    """Interface for upscaling backends."""

    name = "base"

    def run(self, image_url: str, scale: int) -> Any:
        """Run one upscale pass; returns the provider's raw output."""
        raise NotImplementedError


class ReplicateUpscaler(UpscaleProvider):
    """Real-ESRGAN on Replicate via its HTTP predictions API."""

    name = "replicate"

    def __init__(self, api_token: str, model_version: str,
                 poll_interval: float = 2.0, timeout: float = 300.0,
                 max_retries: int = 2, session: requests.Session = None):
        self.api_token = api_token
        self.model_version = model_version
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.max_retries = max_retries
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
            "Prefer": "wait",
        }

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """Retry-enabled request returning the JSON body."""
        last_exc: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            try:
                response = self.session.request(method, url, headers=self._headers(),
                                                timeout=60, **kwargs)
                response.raise_for_status()
                return response.json()
            except requests.RequestException as e:
                last_exc = e
                logger.warning(f"Replicate {method} failed (attempt {attempt + 1}/{self.max_retries + 1}): {e}")
                if attempt < self.max_retries:
                    # 0.5s, 1s, 2s
                    time.sleep(0.5 * (2 ** attempt))

        raise UpscaleProviderError(f"Replicate request failed: {last_exc}", provider=self.name)

    def run(self, image_url: str, scale: int) -> Any:
        if not self.api_token:
            raise UpscaleProviderError("REPLICATE_API_TOKEN is not set", provider=self.name)

        logger.info(f"[upscale] Running {scale}x pass via Replicate")
        prediction = self._request("POST", REPLICATE_API_URL, json={
            "version": self.model_version,
            "input": {"image": image_url, "scale": scale, "face_enhance": False},
        })

        deadline = time.monotonic() + self.timeout
        while prediction.get("status") not in ("succeeded", "failed", "canceled"):
            if time.monotonic() > deadline:
                raise UpscaleProviderError(
                    f"Replicate prediction timed out after {self.timeout:.0f}s", provider=self.name)
            time.sleep(self.poll_interval)
            prediction = self._request("GET", prediction["urls"]["get"])

        if prediction["status"] != "succeeded":
            raise UpscaleProviderError(
                f"Replicate prediction {prediction['status']}: {prediction.get('error')}",
                provider=self.name)

        return prediction.get("output")


def upscale_image(provider: UpscaleProvider, image_url: str, upscale_factor: int,
                  source_width_px: int, source_height_px: int) -> UpscaleResult:
    """Upscale an image by 2, 4 or 8 and report the resulting dimensions."""
    if upscale_factor not in SUPPORTED_FACTORS:
        raise UnsupportedUpscaleFactorError(upscale_factor)

    logger.info(f"[upscale] Starting {upscale_factor}x upscale via {provider.name}")

    if upscale_factor == 8:
        logger.info("[upscale] 8x mode: pass 1/2 (4x)")
        pass1_url = normalize_provider_output(provider.run(image_url, 4), provider.name)
        logger.info("[upscale] 8x mode: pass 2/2 (2x)")
        result_url = normalize_provider_output(provider.run(pass1_url, 2), provider.name)
    else:
        result_url = normalize_provider_output(provider.run(image_url, upscale_factor), provider.name)

    return UpscaleResult(
        url=result_url,
        source_width_px=source_width_px,
        source_height_px=source_height_px,
        final_width_px=source_width_px * upscale_factor,
        final_height_px=source_height_px * upscale_factor,
        upscale_factor=upscale_factor,
        upscale_provider=provider.name,
    )


def create_upscaler(config) -> UpscaleProvider:
    if config.UPSCALE_PROVIDER != "replicate":
        raise ValueError(f"Unknown upscale provider: {config.UPSCALE_PROVIDER}")
    return ReplicateUpscaler(
        api_token=config.REPLICATE_API_TOKEN,
        model_version=config.REPLICATE_MODEL_VERSION,
        poll_interval=config.UPSCALE_POLL_INTERVAL,
        timeout=config.UPSCALE_TIMEOUT,
        max_retries=config.UPSCALE_MAX_RETRIES,
    )
