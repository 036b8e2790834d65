# api/v1/endpoints/screenshot.py
import base64
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response
from loguru import logger

from models.article import ImagesResponse
from services.reader.pipeline import ReaderPipeline

router = APIRouter()


def get_pipeline(request: Request) -> ReaderPipeline:
    return request.app.state.pipeline


def _png_attachment(png: bytes, filename: str, headers: Optional[dict] = None) -> Response:
    all_headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    all_headers.update(headers or {})
    return Response(content=png, media_type="image/png", headers=all_headers)


@router.get(
    "/screenshot",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
async def screenshot(
    url: Optional[str] = Query(None, description="Page to capture"),
    pipeline: ReaderPipeline = Depends(get_pipeline),
):
    """Full-page PNG of the page's reader view (or of the page itself when no article is found)."""
    logger.info(f"Processing screenshot request for URL: {url}")
    result = await pipeline.screenshot(url)
    return _png_attachment(
        result.png,
        "screenshot.png",
        {
            "X-Reader-Mode": "applied" if result.reader_applied else "fallback",
            "X-Extraction-Strategy": result.strategy or "none",
        },
    )


@router.get("/screenshot/images", response_model=ImagesResponse)
async def screenshot_images(
    url: Optional[str] = Query(None, description="Page whose article images to capture"),
    pipeline: ReaderPipeline = Depends(get_pipeline),
):
    """One base64 PNG per content image of the article."""
    logger.info(f"Processing image screenshot request for URL: {url}")
    images = await pipeline.screenshot_images(url)
    body = ImagesResponse(totalImages=len(images), images=images)
    return JSONResponse(
        content=body.model_dump(),
        headers={"X-Total-Images": str(body.totalImages)},
    )


@router.get(
    "/screenshot/images/{index}",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
async def screenshot_image(
    index: int,
    url: Optional[str] = Query(None, description="Page whose article image to capture"),
    pipeline: ReaderPipeline = Depends(get_pipeline),
):
    """A single content image as a PNG attachment."""
    image = await pipeline.screenshot_image(url, index)
    return _png_attachment(base64.b64decode(image.data), f"image-{image.index}.png")
