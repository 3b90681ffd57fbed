# najm/ocr/routes.py
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse

from najm.core.config import Settings, get_settings
from najm.ocr import services as ocr_service
from najm.upload import services as upload_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ocr-upload", tags=["OCR"])


@router.post("")
def ocr_upload(
    image: UploadFile = File(...),
    type: str = Form(default="unknown"),
    settings: Settings = Depends(get_settings),
):
    stored = upload_service.save_upload(
        image,
        settings.UPLOAD_DIR,
        upload_service.IMAGE_FOLDER,
        upload_service.IMAGE_RULE,
        settings.MAX_FILE_SIZE,
    )
    logger.info("Image uploaded: %s (type: %s)", stored.filename, type)

    # OCR failures still keep the image; the error travels in the data block
    vehicle = ocr_service.analyze_vehicle_image(stored.path, settings)
    return {
        "message": "Image uploaded and processed successfully",
        "data": vehicle.to_dict(),
        "file": {**stored.to_dict(), "type": type},
    }


@router.post("/batch")
def ocr_upload_batch(
    images: list[UploadFile] = File(...),
    settings: Settings = Depends(get_settings),
):
    stored_files = upload_service.save_uploads(
        images,
        settings.UPLOAD_DIR,
        upload_service.IMAGE_FOLDER,
        upload_service.IMAGE_RULE,
        settings.MAX_FILE_SIZE,
    )
    logger.info("Processing %d images", len(stored_files))

    results = []
    for stored in stored_files:
        vehicle = ocr_service.analyze_vehicle_image(stored.path, settings)
        results.append(
            {
                "success": vehicle.error is None,
                "file": stored.to_dict(),
                "data": vehicle.to_dict(),
            }
        )
    return {
        "message": f"Processed {len(results)} images",
        "count": len(results),
        "results": results,
    }


@router.get("/image/{filename}")
def get_image(filename: str, settings: Settings = Depends(get_settings)):
    path = upload_service.stored_file_path(
        settings.UPLOAD_DIR, upload_service.IMAGE_FOLDER, filename
    )
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Image not found")
    return FileResponse(path)


@router.delete("/image/{filename}")
def delete_image(filename: str, settings: Settings = Depends(get_settings)):
    path = upload_service.stored_file_path(
        settings.UPLOAD_DIR, upload_service.IMAGE_FOLDER, filename
    )
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Image not found")
    upload_service.remove_file(path)
    logger.info("Deleted image: %s", filename)
    return {"message": "Image deleted successfully"}
