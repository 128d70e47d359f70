"""Prepare a cropped video frame for Tesseract.

Video frames are noisy and often small: upscale, grayscale, Otsu threshold
to black text on white, then drop connected components that cannot be
glyphs (specks, frame borders, big blobs).
"""

from __future__ import annotations

import cv2
import numpy as np
from PIL import Image

# Tesseract accuracy drops sharply for glyphs under ~20px tall.
MIN_WIDTH = 600
MIN_HEIGHT = 100
MAX_SCALE = 4


def upscale(img: Image.Image) -> Image.Image:
    """Scale up by an integer factor (1x-4x) so the image reaches MIN_WIDTH x MIN_HEIGHT."""
    w, h = img.size
    if w == 0 or h == 0:
        return img
    scale = 1
    if w < MIN_WIDTH:
        scale = max(scale, (MIN_WIDTH + w - 1) // w)
    if h < MIN_HEIGHT:
        scale = max(scale, (MIN_HEIGHT + h - 1) // h)
    scale = min(scale, MAX_SCALE)
    if scale > 1:
        img = img.resize((w * scale, h * scale), Image.Resampling.LANCZOS)
    return img


def binarize(rgb: np.ndarray) -> np.ndarray:
    """Black-on-white binary image (uint8, single channel)."""
    if rgb is None or rgb.size == 0:
        return rgb

    gray = cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)
    h, w = gray.shape

    # Uniform frame: nothing to threshold, Otsu would invent text
    if float(np.std(gray)) < 5.0:
        return np.full((h, w), 255, dtype=np.uint8)

    _, otsu = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)

    # Light text on dark background -> invert so text ends up black
    binary = cv2.bitwise_not(otsu) if float(np.mean(gray)) < 128 else otsu
    if float(np.mean(binary == 255)) < 0.4:
        binary = cv2.bitwise_not(binary)

    return _remove_noise_components(binary)


def _remove_noise_components(binary: np.ndarray) -> np.ndarray:
    h, w = binary.shape
    text_mask = cv2.bitwise_not(binary)
    num_labels, labels, stats, _ = cv2.connectedComponentsWithStats(
        text_mask, connectivity=8,
    )
    if num_labels <= 1:
        return binary

    total_area = h * w
    min_area = max(2, int(total_area * 0.00002))

    result = np.full_like(binary, 255)
    for i in range(1, num_labels):
        area = stats[i, cv2.CC_STAT_AREA]
        comp_h = stats[i, cv2.CC_STAT_HEIGHT]
        comp_w = stats[i, cv2.CC_STAT_WIDTH]

        if area < min_area:
            continue
        # Borders and panels spanning the crop
        if comp_h > h * 0.85 or comp_w > w * 0.85:
            continue
        if area > total_area * 0.4:
            continue
        # Long horizontal rules
        if comp_h > 0 and comp_w / comp_h > 20:
            continue

        result[labels == i] = 0

    return result


def prepare_for_ocr(rgb: np.ndarray) -> Image.Image:
    return Image.fromarray(binarize(np.array(upscale(Image.fromarray(rgb)))))
