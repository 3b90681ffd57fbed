# najm/upload/services.py
import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

from najm.core.errors import UploadRejectedError
from najm.ticket.schemas import AttachmentIn

logger = logging.getLogger(__name__)

MAX_FILES = 10
CHUNK_SIZE = 1024 * 1024

DEFAULT_FOLDER = "accident_photos"
AUDIO_FOLDER = "audio"
IMAGE_FOLDER = "images"

# Upload type (singular or plural) -> folder under UPLOAD_DIR
UPLOAD_FOLDERS = {
    "accident_photos": "accident_photos",
    "id_card": "id_cards",
    "id_cards": "id_cards",
    "driving_license": "driving_licenses",
    "driving_licenses": "driving_licenses",
    "vehicle_registration": "vehicle_registrations",
    "vehicle_registrations": "vehicle_registrations",
}


@dataclass(frozen=True)
class FileRule:
    types: frozenset
    message: str
    any_audio: bool = False

    def allows(self, mimetype: str) -> bool:
        if mimetype in self.types:
            return True
        return self.any_audio and mimetype.startswith("audio/")


IMAGE_RULE = FileRule(
    frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp", "image/heic"}),
    "Invalid file type. Only JPEG, PNG, WEBP, and HEIC images are allowed.",
)
DOCUMENT_RULE = FileRule(
    IMAGE_RULE.types | {"application/pdf"},
    "Invalid file type. Only images and PDF files are allowed.",
)
AUDIO_RULE = FileRule(
    frozenset({"audio/webm", "audio/wav", "audio/mp3", "audio/mpeg", "audio/ogg", "audio/x-m4a"}),
    "Invalid file type. Only audio files are allowed.",
    any_audio=True,
)


@dataclass
class StoredFile:
    filename: str
    original_name: str
    path: Path
    url: str
    size: int
    mimetype: str

    def to_attachment(self, kind: str) -> AttachmentIn:
        return AttachmentIn(
            filename=self.filename,
            original_name=self.original_name,
            url=self.url,
            type=kind,
            mimetype=self.mimetype,
            size=self.size,
        )

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "original_name": self.original_name,
            "url": self.url,
            "size": self.size,
            "mimetype": self.mimetype,
        }


def resolve_folder(upload_type: str | None) -> str:
    return UPLOAD_FOLDERS.get(upload_type or "", DEFAULT_FOLDER)


def unique_filename(original_name: str | None, prefix: str = "") -> str:
    """``<prefix><uuid4>-<epoch ms><ext>``; only the extension of the client name survives."""
    ext = Path(original_name or "").suffix.lower()
    return f"{prefix}{uuid.uuid4()}-{int(time.time() * 1000)}{ext}"


def stored_file_path(upload_root: Path, folder: str, filename: str) -> Path:
    if not filename or filename in (".", "..") or Path(filename).name != filename:
        raise UploadRejectedError("Invalid filename")
    return Path(upload_root) / folder / filename


def save_upload(
    upload: UploadFile,
    upload_root: Path,
    folder: str,
    rule: FileRule,
    max_size: int,
    prefix: str = "",
) -> StoredFile:
    """Validate and write one uploaded file, streaming it in chunks."""
    mimetype = upload.content_type or ""
    if not rule.allows(mimetype):
        raise UploadRejectedError(rule.message)

    target_dir = Path(upload_root) / folder
    target_dir.mkdir(parents=True, exist_ok=True)
    filename = unique_filename(upload.filename, prefix)
    path = target_dir / filename

    size = 0
    with path.open("wb") as out:
        while chunk := upload.file.read(CHUNK_SIZE):
            size += len(chunk)
            if size > max_size:
                break
            out.write(chunk)
    if size > max_size:
        path.unlink(missing_ok=True)
        raise UploadRejectedError(
            f"File too large. Maximum size is {max_size // (1024 * 1024)}MB"
        )

    logger.info("Stored upload %s (%s, %d bytes) in %s", filename, mimetype, size, folder)
    return StoredFile(
        filename=filename,
        original_name=upload.filename or filename,
        path=path,
        url=f"/uploads/{folder}/{filename}",
        size=size,
        mimetype=mimetype,
    )


def save_uploads(
    uploads: list[UploadFile],
    upload_root: Path,
    folder: str,
    rule: FileRule,
    max_size: int,
) -> list[StoredFile]:
    """Save a batch; a rejected file removes the ones already written."""
    if len(uploads) > MAX_FILES:
        raise UploadRejectedError(f"Too many files. Maximum is {MAX_FILES}")
    stored: list[StoredFile] = []
    try:
        for upload in uploads:
            stored.append(save_upload(upload, upload_root, folder, rule, max_size))
    except UploadRejectedError:
        for item in stored:
            remove_file(item.path)
        raise
    return stored


def remove_file(path: Path) -> bool:
    try:
        Path(path).unlink()
    except FileNotFoundError:
        return False
    except OSError:
        logger.error("Error deleting file %s", path, exc_info=True)
        return False
    return True
