import io
import logging
from typing import Union

from PIL import Image, ImageOps, UnidentifiedImageError

from app.core.exceptions import DecodeError
from app.schemas.upload import ImageOptions, ImageRole

logger = logging.getLogger(__name__)

__all__ = ["ImageTransform", "default_options_for"]

OUTPUT_FORMAT = "WEBP"

# Modes WebP can encode directly
_ENCODABLE_MODES = ("RGB", "RGBA")


def default_options_for(role: ImageRole, settings) -> ImageOptions:
    """Role-specific processing profile taken from application settings."""
    if role == ImageRole.BACKGROUND:
        return ImageOptions(
            width=settings.BACKGROUND_IMAGE_WIDTH,
            height=settings.BACKGROUND_IMAGE_HEIGHT,
            quality=settings.IMAGE_QUALITY,
        )
    return ImageOptions(
        width=settings.PROFILE_IMAGE_WIDTH,
        height=settings.PROFILE_IMAGE_HEIGHT,
        quality=settings.IMAGE_QUALITY,
    )


class ImageTransform:
    """
    Resizes and re-encodes uploaded images into the fixed WebP output profile.

    - profile: cover-crop to exactly width x height, centered
    - background: contain within width x height, aspect preserved, never upscaled
    """

    def transform(
        self,
        source: Union[bytes, str],
        role: ImageRole,
        options: ImageOptions,
    ) -> bytes:
        """
        Processes an image from raw bytes or a file path.

        Args:
            source: Image bytes or a path to an image file on disk.
            role: Determines the geometry (cover vs. contain).
            options: Fully resolved width/height/quality.

        Returns:
            bytes: The encoded WebP image.

        Raises:
            DecodeError: If the input cannot be decoded or the output cannot be encoded.
        """
        image = self._open(source)
        try:
            normalized = self._normalize_mode(image)
            if role == ImageRole.BACKGROUND:
                processed = self._contain(normalized, options.width, options.height)
            else:
                processed = self._cover(normalized, options.width, options.height)

            output = io.BytesIO()
            processed.save(output, format=OUTPUT_FORMAT, quality=options.quality)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to encode {role.value} image: {e}", exc_info=True)
            raise DecodeError(f"Could not encode image: {e}", operation="encode") from e
        finally:
            image.close()

        data = output.getvalue()
        logger.debug(f"Transformed {role.value} image to {processed.size[0]}x{processed.size[1]} ({len(data)} bytes)")
        return data

    def _open(self, source: Union[bytes, str]) -> Image.Image:
        try:
            if isinstance(source, (bytes, bytearray)):
                image = Image.open(io.BytesIO(source))
            else:
                image = Image.open(source)
            # Force a full decode so truncated files fail here rather than at save time
            image.load()
            return image
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            logger.warning(f"Rejected undecodable image input: {e}")
            raise DecodeError(f"Input is not a valid or supported image: {e}", operation="decode") from e

    @staticmethod
    def _cover(image: Image.Image, width: int, height: int) -> Image.Image:
        return ImageOps.fit(
            image,
            (width, height),
            method=Image.Resampling.LANCZOS,
            centering=(0.5, 0.5),
        )

    @staticmethod
    def _contain(image: Image.Image, width: int, height: int) -> Image.Image:
        contained = image.copy()
        # thumbnail() only ever shrinks and keeps the aspect ratio
        contained.thumbnail((width, height), Image.Resampling.LANCZOS)
        return contained

    @staticmethod
    def _normalize_mode(image: Image.Image) -> Image.Image:
        if image.mode in _ENCODABLE_MODES:
            return image
        has_alpha = image.mode in ("LA", "PA") or (image.mode == "P" and "transparency" in image.info)
        return image.convert("RGBA" if has_alpha else "RGB")

