"""Image encoding helpers backed by Pillow."""

from io import BytesIO

from PIL import Image
from PIL import UnidentifiedImageError

from image_gateway.exceptions import ConversionError
from image_gateway.types import ImageFormat

DEFAULT_QUALITY = 85


def convert_image(
    data: bytes, fmt: ImageFormat, quality: int = DEFAULT_QUALITY
) -> bytes:
    """Decode ``data`` and re-encode it as ``fmt``.

    ``quality`` applies to the lossy encoders (WebP and JPEG).

    Raises:
        ConversionError: If the input cannot be decoded or the encoder fails
    """
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            if fmt is ImageFormat.JPEG and img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            elif img.mode == "P":
                img = img.convert("RGBA")

            out = BytesIO()
            if fmt is ImageFormat.PNG:
                img.save(out, format=fmt.pillow_name, optimize=True)
            else:
                img.save(out, format=fmt.pillow_name, quality=quality)
            return out.getvalue()
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
    ) as e:
        raise ConversionError(f"Could not convert image to {fmt.value}: {e}") from e


def to_webp(data: bytes, quality: int = DEFAULT_QUALITY) -> bytes:
    return convert_image(data, ImageFormat.WEBP, quality=quality)
