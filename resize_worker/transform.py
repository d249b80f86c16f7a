"""
Image resizing for resize jobs.

`resize_image_bytes` decodes any format Pillow can read, resizes it with one
of a fixed set of interpolation methods and always re-encodes as JPEG.
Pillow covers the common filters; Mitchell-Netravali and Lanczos2 have no
Pillow equivalent and are evaluated as separable kernels with numpy.
"""

from __future__ import annotations

from enum import Enum
from io import BytesIO
from typing import Callable, Tuple

import numpy as np
from PIL import Image

from .exceptions import TransformError

OUTPUT_FORMAT = "JPEG"
OUTPUT_CONTENT_TYPE = "image/jpeg"
DEFAULT_JPEG_QUALITY = 75


class ResizeMethod(str, Enum):
    NEAREST_NEIGHBOR = "NearestNeighbor"
    BILINEAR = "Bilinear"
    BICUBIC = "Bicubic"
    MITCHELL_NETRAVALI = "MitchellNetravali"
    LANCZOS2 = "Lanczos2"
    LANCZOS3 = "Lanczos3"


DEFAULT_METHOD = ResizeMethod.LANCZOS3

_PIL_FILTERS = {
    ResizeMethod.NEAREST_NEIGHBOR: Image.NEAREST,
    ResizeMethod.BILINEAR: Image.BILINEAR,
    ResizeMethod.BICUBIC: Image.BICUBIC,
    ResizeMethod.LANCZOS3: Image.LANCZOS,
}


def resolve_method(name) -> ResizeMethod:
    """Map a method name to a `ResizeMethod`; unknown or empty names give Lanczos3."""
    if isinstance(name, ResizeMethod):
        return name
    try:
        return ResizeMethod(name)
    except ValueError:
        return DEFAULT_METHOD


def compute_target_size(width: int, height: int, orig_size: Tuple[int, int]) -> Tuple[int, int]:
    """
    Resolve requested dimensions against the source size.

    Zero on one axis keeps the aspect ratio on that axis; zero on both keeps
    the original size.
    """
    orig_w, orig_h = orig_size
    if width < 0 or height < 0:
        raise ValueError("width and height must be non-negative")
    if width == 0 and height == 0:
        return orig_w, orig_h
    if width == 0:
        width = max(1, int(0.7 + orig_w / orig_h * height))
    elif height == 0:
        height = max(1, int(0.7 + orig_h / orig_w * width))
    return width, height


def _mitchell_netravali(x: np.ndarray) -> np.ndarray:
    b = c = 1.0 / 3.0
    x = np.abs(x)
    near = ((12 - 9 * b - 6 * c) * x**3 + (-18 + 12 * b + 6 * c) * x**2 + (6 - 2 * b)) / 6
    far = ((-b - 6 * c) * x**3 + (6 * b + 30 * c) * x**2 + (-12 * b - 48 * c) * x + (8 * b + 24 * c)) / 6
    return np.where(x < 1, near, np.where(x < 2, far, 0.0))


def _lanczos(a: int) -> Callable[[np.ndarray], np.ndarray]:
    def kernel(x: np.ndarray) -> np.ndarray:
        return np.where(np.abs(x) < a, np.sinc(x) * np.sinc(x / a), 0.0)

    return kernel


# name -> (kernel, support radius in source pixels at scale 1)
_KERNELS = {
    ResizeMethod.MITCHELL_NETRAVALI: (_mitchell_netravali, 2.0),
    ResizeMethod.LANCZOS2: (_lanczos(2), 2.0),
}


def _axis_weights(
    in_size: int, out_size: int, kernel: Callable[[np.ndarray], np.ndarray], support: float
) -> Tuple[np.ndarray, np.ndarray]:
    """Source indices and normalized weights, one row per output sample."""
    scale = in_size / out_size
    # Kernel support grows with the downscale factor.
    filter_scale = max(scale, 1.0)
    radius = support * filter_scale
    centers = (np.arange(out_size) + 0.5) * scale
    taps = int(np.ceil(2 * radius)) + 1
    left = np.floor(centers - radius).astype(np.int64)
    idx = left[:, None] + np.arange(taps)[None, :]
    weights = kernel((idx + 0.5 - centers[:, None]) / filter_scale)
    totals = weights.sum(axis=1, keepdims=True)
    totals[totals == 0] = 1.0
    return np.clip(idx, 0, in_size - 1), weights / totals


def _resample_axis(pixels: np.ndarray, idx: np.ndarray, weights: np.ndarray, axis: int) -> np.ndarray:
    """Weighted sum of source samples along one axis, one tap at a time."""
    out_shape = list(pixels.shape)
    out_shape[axis] = idx.shape[0]
    acc = np.zeros(out_shape, dtype=np.float32)
    bcast = [1] * pixels.ndim
    bcast[axis] = -1
    weights = weights.astype(np.float32)
    for t in range(idx.shape[1]):
        acc += np.take(pixels, idx[:, t], axis=axis) * weights[:, t].reshape(bcast)
    return acc


def _kernel_resize(image: Image.Image, size: Tuple[int, int], method: ResizeMethod) -> Image.Image:
    kernel, support = _KERNELS[method]
    out_w, out_h = size
    pixels = np.asarray(image)  # (H, W, C) uint8
    in_h, in_w = pixels.shape[:2]

    # Peak memory stays at the source plus the partially resized output.
    idx, weights = _axis_weights(in_w, out_w, kernel, support)
    pixels = _resample_axis(pixels, idx, weights, axis=1)

    idx, weights = _axis_weights(in_h, out_h, kernel, support)
    pixels = _resample_axis(pixels, idx, weights, axis=0)

    return Image.fromarray(np.clip(np.rint(pixels), 0, 255).astype(np.uint8))


def resize_image(image: Image.Image, width: int, height: int, method: ResizeMethod) -> Image.Image:
    """Resize an RGB image; see `compute_target_size` for the zero rules."""
    size = compute_target_size(width, height, image.size)
    if size == image.size:
        return image.copy()
    if method in _PIL_FILTERS:
        return image.resize(size, _PIL_FILTERS[method])
    return _kernel_resize(image, size, method)


def resize_image_bytes(
    image_bytes: bytes,
    width: int,
    height: int,
    method="",
    quality: int = DEFAULT_JPEG_QUALITY,
) -> bytes:
    """
    Full transform from source bytes to JPEG bytes.

    Raises:
        TransformError: when the input cannot be decoded or the output
            cannot be encoded.
    """
    method = resolve_method(method)
    try:
        image = Image.open(BytesIO(image_bytes)).convert("RGB")
    except Exception as exc:  # noqa: BLE001
        raise TransformError("Invalid image data") from exc

    try:
        resized = resize_image(image, width, height, method)
        buf = BytesIO()
        resized.save(buf, format=OUTPUT_FORMAT, quality=quality)
    except Exception as exc:  # noqa: BLE001
        raise TransformError(f"Resize with {method.value} failed: {exc}") from exc
    return buf.getvalue()
