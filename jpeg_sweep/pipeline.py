"""Image normalization pipeline powered by Pillow.

Every source image goes through the same fixed sequence: decode the first
frame, apply EXIF orientation, optionally center-crop to an aspect ratio,
shrink to a bounded longer side, strip metadata, flatten transparency onto
white and re-encode as a progressive JPEG.
"""

from __future__ import annotations

import io
import logging
import math
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from filetype import guess
from PIL import ExifTags, Image, ImageOps, UnidentifiedImageError, features

from .config import TransformParams
from .errors import DecodeError, EncodeError, UnsupportedFormatError
from .models import NormalizedImage, SourceImage

logger = logging.getLogger("jpeg_sweep.pipeline")

# MPO is the multi-picture JPEG many phone cameras write; frame 0 is the primary image.
SUPPORTED_FORMATS = {"JPEG", "MPO", "PNG", "WEBP", "PSD"}
SUPPORTED_SIGNATURES = {"jpg", "png", "apng", "webp", "psd"}
RATIO_TOLERANCE = 1e-4
BACKGROUND_COLOR = (255, 255, 255)

# Encoder policy, not per-call configuration.
JPEG_SUBSAMPLING = 2  # 4:2:0
JPEG_PROGRESSIVE = True
JPEG_OPTIMIZE = True

# 16-bit grayscale PNGs open in one of these modes.
WIDE_GRAYSCALE_MODES = {"I", "I;16", "I;16B", "I;16L", "I;16N"}

_DECODE_ERRORS = (OSError, EOFError, SyntaxError, ValueError, Image.DecompressionBombError)


def detect_signature(data: bytes) -> Optional[str]:
    """Detect the container type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind is None:
        return None
    ext = kind.extension.lower()
    if ext == "jpeg":
        return "jpg"
    return ext


def _open(data: bytes) -> Image.Image:
    signature = detect_signature(data)
    if signature is not None and signature not in SUPPORTED_SIGNATURES:
        raise UnsupportedFormatError(f"unsupported image type: {signature}")
    try:
        image = Image.open(io.BytesIO(data))
    except UnidentifiedImageError as exc:
        raise DecodeError("cannot identify image data") from exc
    except _DECODE_ERRORS as exc:
        raise DecodeError(f"cannot open image: {exc}") from exc
    if image.format not in SUPPORTED_FORMATS:
        image.close()
        raise UnsupportedFormatError(f"unsupported image format: {image.format}")
    return image


def _has_alpha(image: Image.Image) -> bool:
    bands = {band.upper() for band in image.getbands()}
    return "A" in bands or "transparency" in image.info


def _orientation(image: Image.Image) -> int:
    try:
        return int(image.getexif().get(ExifTags.Base.Orientation, 1))
    except (SyntaxError, ValueError, TypeError, OSError):
        return 1


def inspect_source(data: bytes, path: Optional[Path] = None) -> SourceImage:
    """Probe an image header without decoding its pixels."""
    with _open(data) as image:
        width, height = image.size
        return SourceImage(
            data=data,
            format=image.format,
            width=width,
            height=height,
            orientation=_orientation(image),
            has_alpha=_has_alpha(image),
            path=path,
        )


def _to_8bit(image: Image.Image) -> Image.Image:
    """Scale a 16-bit grayscale raster down to ``L``."""
    if image.mode not in WIDE_GRAYSCALE_MODES:
        return image
    return image.convert("I").point(lambda value: value * (255 / 65535)).convert("L")


def decode(source: SourceImage) -> Image.Image:
    """Decode the first frame into an ``RGB`` or ``RGBA`` raster.

    A freshly opened file sits on its first frame; for PSD that is the merged
    composite rather than an individual layer.
    """
    with _open(source.data) as image:
        try:
            image.load()
            return _to_8bit(image).convert("RGBA" if source.has_alpha else "RGB")
        except _DECODE_ERRORS as exc:
            raise DecodeError(f"cannot decode {source.format} image: {exc}") from exc


def orient(image: Image.Image) -> Image.Image:
    try:
        return ImageOps.exif_transpose(image)
    except Exception as exc:  # noqa: BLE001
        raise DecodeError(f"invalid orientation metadata: {exc}") from exc


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def crop_box(width: int, height: int, ratio: float) -> Optional[Tuple[int, int, int, int]]:
    """Centered crop window matching ``ratio`` (width / height), or None."""
    current = width / height
    if abs(current - ratio) <= RATIO_TOLERANCE:
        return None
    if current > ratio:
        new_width, new_height = max(1, _round_half_up(height * ratio)), height
    else:
        new_width, new_height = width, max(1, _round_half_up(width / ratio))
    left = max(0, (width - new_width) // 2)
    top = max(0, (height - new_height) // 2)
    return left, top, left + new_width, top + new_height


def crop_to_ratio(image: Image.Image, ratio: float) -> Image.Image:
    box = crop_box(image.width, image.height, ratio)
    if box is None:
        return image
    logger.debug("Cropping %sx%s to %s", image.width, image.height, box)
    return image.crop(box)


def bounded_size(width: int, height: int, max_side: int) -> Tuple[int, int]:
    """Size with the longer side capped at ``max_side``; never upscales."""
    if max(width, height) <= max_side:
        return width, height
    if width >= height:
        return max_side, max(1, _round_half_up(height * max_side / width))
    return max(1, _round_half_up(width * max_side / height)), max_side


def resize_to_bound(image: Image.Image, max_side: int) -> Image.Image:
    size = bounded_size(image.width, image.height, max_side)
    if size == image.size:
        return image
    return image.resize(size, Image.Resampling.LANCZOS)


def strip_metadata(image: Image.Image) -> Image.Image:
    image.info = {}
    return image


def flatten_alpha(image: Image.Image) -> Image.Image:
    """Composite transparent pixels onto a white background."""
    if image.mode != "RGBA":
        return image
    background = Image.new("RGB", image.size, BACKGROUND_COLOR)
    background.paste(image, mask=image.getchannel("A"))
    background.info = dict(image.info)
    return background


def encode_jpeg(image: Image.Image, quality: int) -> bytes:
    options = {
        "quality": quality,
        "subsampling": JPEG_SUBSAMPLING,
        "progressive": JPEG_PROGRESSIVE,
        "optimize": JPEG_OPTIMIZE,
    }
    for key in ("exif", "icc_profile"):
        value = image.info.get(key)
        if value:
            options[key] = value
    buffer = io.BytesIO()
    try:
        image.save(buffer, format="JPEG", **options)
    except (OSError, ValueError, MemoryError) as exc:
        raise EncodeError(f"JPEG encoding failed: {exc}") from exc
    return buffer.getvalue()


def normalize(data: bytes, params: TransformParams, path: Optional[Path] = None) -> NormalizedImage:
    """Run the full transform sequence and return JPEG bytes."""
    source = inspect_source(data, path)
    image = orient(decode(source))
    if params.crop_ratio is not None:
        image = crop_to_ratio(image, params.crop_ratio)
    image = resize_to_bound(image, params.max_side)
    if params.strip_metadata:
        image = strip_metadata(image)
    image = flatten_alpha(image)
    payload = encode_jpeg(image, params.quality)
    logger.debug(
        "Normalized %s (%s) %sx%s -> %sx%s (%d bytes)",
        source.path.name if source.path else "<bytes>",
        source.format,
        source.width,
        source.height,
        image.width,
        image.height,
        len(payload),
    )
    return NormalizedImage(data=payload, width=image.width, height=image.height)


def normalize_file(path: Union[str, Path], params: TransformParams) -> NormalizedImage:
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise DecodeError(f"cannot read {path.name}: {exc}") from exc
    return normalize(data, params, path)


def decoder_capabilities() -> Dict[str, bool]:
    """Report which formats the installed Pillow build can handle."""
    return {
        "jpeg": bool(features.check_codec("jpg")),
        "png": bool(features.check_codec("zlib")),
        "webp": bool(features.check_module("webp")),
        "psd": "PSD" in Image.registered_extensions().values(),
    }


def decoder_available() -> bool:
    capabilities = decoder_capabilities()
    return capabilities["jpeg"] and capabilities["png"]
