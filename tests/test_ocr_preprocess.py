import cv2
import numpy as np
from PIL import Image

from region_translator.ocr_preprocess import MAX_SCALE, binarize, prepare_for_ocr, upscale


def test_upscale_small_crop():
    img = upscale(Image.new("RGB", (200, 50)))
    assert img.size == (600, 150)


def test_upscale_is_capped():
    img = upscale(Image.new("RGB", (10, 10)))
    assert img.size == (10 * MAX_SCALE, 10 * MAX_SCALE)


def test_large_crop_is_untouched():
    img = Image.new("RGB", (800, 200))
    assert upscale(img) is img


def _caption(background, text_color):
    img = np.full((120, 600, 3), background, dtype=np.uint8)
    cv2.putText(img, "HELLO", (40, 80), cv2.FONT_HERSHEY_SIMPLEX, 2, text_color, 5)
    return img


def test_binarize_dark_text_on_light_background():
    binary = binarize(_caption(230, (20, 20, 20)))
    assert binary.shape == (120, 600)
    assert binary[5, 5] == 255
    assert (binary == 0).any()


def test_binarize_light_text_on_dark_background_is_inverted():
    binary = binarize(_caption(15, (240, 240, 240)))
    # Background ends up white, glyphs black
    assert binary[5, 5] == 255
    assert (binary == 0).any()


def test_uniform_frame_is_blank():
    binary = binarize(np.full((50, 50, 3), 90, dtype=np.uint8))
    assert (binary == 255).all()


def test_prepare_for_ocr_returns_grayscale_image():
    img = prepare_for_ocr(_caption(230, (20, 20, 20))[:40, :200])
    assert img.mode == "L"
    assert img.size == (600, 120)
