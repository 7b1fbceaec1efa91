import numpy as np

from app.motion.preprocess import enhance_contrast, normalize, prepare_frame
from app.motion.raster import FrameBuffer, Raster


def test_normalize_resizes_bgr_to_logical_rgba():
    img = np.zeros((900, 1200, 3), dtype=np.uint8)
    img[:, :, 2] = 200  # red in BGR

    r = normalize(img)

    assert r.size == (600, 450)
    assert r.data.shape == (450, 600, 4)
    assert r.get_pixel(300, 200) == (200, 0, 0, 255)


def test_normalize_accepts_grayscale_and_small_frames():
    gray = np.full((120, 160), 90, dtype=np.uint8)

    r = normalize(gray)

    assert r.size == (600, 450)
    assert r.get_pixel(10, 10) == (90, 90, 90, 255)


def test_normalize_does_not_touch_source_raster():
    src = Raster.from_gray(np.full((450, 600), 40, dtype=np.uint8))
    out = normalize(src)
    out.data[...] = 0
    assert src.get_pixel(0, 0) == (40, 40, 40, 255)


def test_contrast_stretch_maps_min_to_0_and_max_to_255():
    gray = np.full((10, 10), 100, dtype=np.uint8)
    gray[0, 0] = 50
    gray[9, 9] = 200
    r = Raster.from_gray(gray)

    enhance_contrast(r)

    assert r.get_pixel(0, 0)[:3] == (0, 0, 0)
    assert r.get_pixel(9, 9)[:3] == (255, 255, 255)
    # (100 - 50) * 255 / 150 = 85
    assert r.get_pixel(5, 5)[:3] == (85, 85, 85)
    # alpha untouched
    assert r.get_pixel(5, 5)[3] == 255


def test_contrast_stretch_leaves_uniform_frame_unchanged():
    r = Raster.from_gray(np.full((20, 30), 80, dtype=np.uint8))

    enhance_contrast(r)

    assert np.all(r.data[:, :, :3] == 80)


def test_prepare_frame_output_spans_full_range():
    gray = np.linspace(60, 180, 600 * 450).reshape(450, 600).astype(np.uint8)

    r = prepare_frame(gray)

    lum = r.luminance()
    assert int(lum.min()) == 0
    assert int(lum.max()) == 255


def test_frame_buffer_shifts_current_into_previous():
    buf = FrameBuffer(8, 6)
    a = Raster.from_gray(np.full((6, 8), 10, dtype=np.uint8))
    b = Raster.from_gray(np.full((6, 8), 20, dtype=np.uint8))

    buf.push(a)
    assert buf.previous.get_pixel(0, 0) == (0, 0, 0, 0)
    assert buf.current.get_pixel(0, 0)[0] == 10

    buf.push(b)
    assert buf.previous.get_pixel(0, 0)[0] == 10
    assert buf.current.get_pixel(0, 0)[0] == 20
    assert buf.frames_pushed == 2

    # buffers are owned copies
    b.data[...] = 99
    assert buf.current.get_pixel(0, 0)[0] == 20
