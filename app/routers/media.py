import logging
from typing import List
from fastapi import APIRouter, Depends

from app.core.config import settings
from app.core.dependencies import get_listing_adapter
from app.services.listing import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS, ListingAdapter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["media"])


@router.get("/media/videos", response_model=List[str], summary="List gallery videos")
async def list_videos(listing: ListingAdapter = Depends(get_listing_adapter)):
    """
    CDN URLs of the `.mp4` files under the videos prefix.
    A storage listing failure is answered with 502.
    """
    urls = listing.list(settings.VIDEOS_PREFIX, VIDEO_EXTENSIONS)
    logger.info(f"Found {len(urls)} video URLs.")
    return urls


@router.get("/carasouls", response_model=List[str], summary="List carousel images")
@router.get("/carousels", response_model=List[str], include_in_schema=False)
async def list_carousel_images(listing: ListingAdapter = Depends(get_listing_adapter)):
    urls = listing.list(settings.CAROUSEL_PREFIX, IMAGE_EXTENSIONS)
    logger.info(f"Found {len(urls)} image URLs for carousel.")
    return urls
