import logging
import shutil
import time
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from config import Settings, get_settings
from security import admin, protect

logger = logging.getLogger(__name__)

router = APIRouter()

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}


def check_image(upload: UploadFile) -> str:
    ext = Path(upload.filename or "").suffix.lower()
    if ext not in ALLOWED_EXTENSIONS or not (upload.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="Images only! (jpg, jpeg, png, webp)")
    return ext


@router.post("", dependencies=[Depends(protect), Depends(admin)])
def upload_image(image: UploadFile = File(...), settings: Settings = Depends(get_settings)):
    ext = check_image(image)
    filename = f"image-{int(time.time() * 1000)}{ext}"
    settings.uploads_dir.mkdir(parents=True, exist_ok=True)
    with open(settings.uploads_dir / filename, "wb") as out:
        shutil.copyfileobj(image.file, out)
    logger.info("Stored upload %s", filename)
    return {"message": "Image uploaded successfully", "image": f"/uploads/{filename}"}
