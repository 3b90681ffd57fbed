# najm/ocr/services.py
"""
Image OCR through the Azure Computer Vision Read API, plus the regex pass
that turns the recognised lines into a plate number and a damage summary.
"""

import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from najm.core.config import Settings
from najm.core.errors import ServiceNotConfiguredError, UpstreamServiceError

logger = logging.getLogger(__name__)

READ_PATH = "/vision/v3.2/read/analyze"
PENDING_STATUSES = {"notStarted", "running"}

UNCLEAR = "غير واضح"

# Arabic letters (spaces allowed between them) then 3-4 digits, e.g. "ا ب ج 1234"
ARABIC_PLATE = re.compile(r"[\u0600-\u06FF][\u0600-\u06FF\s]{0,9}\d{3,4}")
LATIN_PLATE = re.compile(r"[A-Z]{1,3}\s*\d{3,4}", re.IGNORECASE)
PLATE_NUMBER = re.compile(r"\b\d{3,4}\b")

DAMAGE_KEYWORDS_AR = ["ضرر", "تلف", "كسر", "خدش", "صدمة", "حادث", "تصادم", "أمامي", "خلفي", "جانبي"]
DAMAGE_KEYWORDS_EN = [
    "damage", "broken", "scratch", "dent", "crack", "collision",
    "accident", "front", "rear", "side", "bumper",
]


class OcrError(UpstreamServiceError):
    pass


@dataclass
class OcrText:
    lines: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


@dataclass
class VehicleData:
    plate: str = UNCLEAR
    damage: str = UNCLEAR
    confidence: float = 0.0
    raw_text: str = ""
    error: str | None = None

    def to_dict(self) -> dict:
        data = {
            "plate": self.plate,
            "damage": self.damage,
            "confidence": self.confidence,
            "raw_text": self.raw_text,
        }
        if self.error:
            data["error"] = self.error
        return data


def read_image_text(
    image: bytes,
    settings: Settings,
    client: httpx.Client | None = None,
    sleep=time.sleep,
) -> OcrText:
    """Submit ``image`` to the Read API and poll until the operation finishes."""
    if not settings.AZURE_COMPUTER_VISION_KEY or not settings.AZURE_COMPUTER_VISION_ENDPOINT:
        raise ServiceNotConfiguredError("Azure Computer Vision credentials not configured")

    headers = {"Ocp-Apim-Subscription-Key": settings.AZURE_COMPUTER_VISION_KEY}
    url = settings.AZURE_COMPUTER_VISION_ENDPOINT.rstrip("/") + READ_PATH

    owns_client = client is None
    client = client or httpx.Client(timeout=settings.HTTP_TIMEOUT)
    try:
        response = client.post(
            url,
            content=image,
            headers={**headers, "Content-Type": "application/octet-stream"},
        )
        response.raise_for_status()
        operation_url = response.headers.get("Operation-Location")
        if not operation_url:
            raise OcrError("OCR response did not include an operation location")

        for _ in range(settings.OCR_MAX_POLLS):
            sleep(settings.OCR_POLL_INTERVAL)
            result = client.get(operation_url, headers=headers)
            result.raise_for_status()
            body = result.json()
            status = body.get("status")
            if status not in PENDING_STATUSES:
                break
        else:
            raise OcrError("OCR operation did not finish in time")
    except httpx.HTTPStatusError as exc:
        raise OcrError(f"Azure OCR error: {exc.response.status_code}")
    except httpx.HTTPError as exc:
        raise OcrError(f"Azure OCR request failed: {exc}")
    finally:
        if owns_client:
            client.close()

    if status != "succeeded":
        raise OcrError(f"OCR operation failed with status: {status}")

    lines = [
        line["text"]
        for page in (body.get("analyzeResult") or {}).get("readResults", [])
        for line in page.get("lines", [])
    ]
    logger.info("OCR completed. Extracted %d lines of text", len(lines))
    return OcrText(lines=lines)


def find_plate(text: str) -> str:
    for pattern in (ARABIC_PLATE, LATIN_PLATE, PLATE_NUMBER):
        match = pattern.search(text)
        if match:
            return match.group(0).strip()
    return UNCLEAR


def find_damage(text: str, lines: list[str]) -> str:
    lowered = text.lower()
    found = [kw for kw in DAMAGE_KEYWORDS_AR if kw in text]
    found += [kw for kw in DAMAGE_KEYWORDS_EN if kw in lowered]
    if found:
        return "، ".join(found)
    if len(lines) > 3:
        meaningful = [line for line in lines if len(line) > 5]
        if meaningful:
            return meaningful[0]
    return UNCLEAR


def extract_vehicle_data(ocr: OcrText) -> VehicleData:
    if not ocr.lines:
        return VehicleData()

    text = ocr.text
    data = VehicleData(
        plate=find_plate(text),
        damage=find_damage(text, ocr.lines),
        confidence=0.8 if len(ocr.lines) > 2 else 0.5,
        raw_text=text,
    )
    logger.info("Extracted vehicle data - plate: %s, damage: %s", data.plate, data.damage)
    return data


def analyze_vehicle_image(path: Path, settings: Settings, client: httpx.Client | None = None) -> VehicleData:
    """OCR an uploaded image; OCR failures come back as unclear fields with the error."""
    try:
        ocr = read_image_text(Path(path).read_bytes(), settings, client=client)
    except (UpstreamServiceError, ServiceNotConfiguredError) as exc:
        logger.error("OCR processing error: %s", exc.message)
        return VehicleData(error=exc.message)
    return extract_vehicle_data(ocr)
