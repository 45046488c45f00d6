"""Turn CHIP-8 framebuffers into images and videos."""

from typing import Dict, Iterator, Optional, Tuple

import cv2
import jax.numpy as jnp
import numpy as np
from PIL import Image

from chipax.constants import SCREEN_WIDTH, SCREEN_HEIGHT

Color = Tuple[int, int, int]

# name -> (on, off)
COLOR_SCHEMES: Dict[str, Tuple[Color, Color]] = {
    "classic": ((0, 255, 0), (0, 0, 0)),
    "amber": ((255, 176, 0), (0, 0, 0)),
    "white": ((255, 255, 255), (0, 0, 0)),
    "blue": ((0, 255, 255), (0, 0, 64)),
    "retro": ((255, 255, 0), (64, 0, 64)),
    "purple": ((179, 102, 184), (45, 25, 61)),
}

# Fraction of a pixel's brightness kept from one video frame to the next
PHOSPHOR_DECAY = 0.8


def create_color_scheme(scheme: str = "classic") -> Tuple[Color, Color]:
    """Return the (on_color, off_color) pair of a named scheme."""
    try:
        return COLOR_SCHEMES[scheme]
    except KeyError:
        raise ValueError(
            f"Unknown color scheme '{scheme}'. Available: {list(COLOR_SCHEMES)}"
        ) from None


def _check_frames(displays: np.ndarray) -> np.ndarray:
    displays = np.asarray(displays, dtype=np.bool_)
    if displays.shape[-2:] != (SCREEN_WIDTH, SCREEN_HEIGHT):
        raise ValueError(
            f"Expected display shape (..., {SCREEN_WIDTH}, {SCREEN_HEIGHT}), got {displays.shape}"
        )
    return displays


def _upscale(image: np.ndarray, scale: int) -> np.ndarray:
    if scale <= 1:
        return image
    return image.repeat(scale, axis=0).repeat(scale, axis=1)


def chip8_display_to_rgb(
    display: jnp.ndarray,
    scale: int = 8,
    on_color: Color = (0, 255, 0),
    off_color: Color = (0, 0, 0),
) -> np.ndarray:
    """Convert a display[x, y] framebuffer to an upscaled RGB image.

    Args:
        display: Boolean array of shape (64, 32)
        scale: Nearest-neighbour upscaling factor
        on_color: RGB color of lit pixels
        off_color: RGB color of dark pixels

    Returns:
        uint8 array of shape (32 * scale, 64 * scale, 3), rows first
    """
    pixels = _check_frames(display)
    if pixels.ndim != 2:
        raise ValueError(f"Expected a single display, got shape {pixels.shape}")
    palette = np.array([off_color, on_color], dtype=np.uint8)
    return _upscale(palette[pixels.T.astype(np.intp)], scale)


def batch_render(
    displays: jnp.ndarray, scale: int = 4, color_scheme: str = "classic", padding: int = 5
) -> np.ndarray:
    """Tile several displays in a near-square grid.

    Args:
        displays: Array of shape (batch_size, 64, 32)
        scale: Upscaling factor of each tile
        color_scheme: Color scheme name
        padding: Transparent gap between tiles, in pixels

    Returns:
        RGBA uint8 image, empty cells and gaps fully transparent
    """
    displays = _check_frames(displays)
    on_color, off_color = create_color_scheme(color_scheme)

    count = displays.shape[0]
    cols = int(np.ceil(np.sqrt(count)))
    rows = int(np.ceil(count / cols))
    tile_h, tile_w = SCREEN_HEIGHT * scale, SCREEN_WIDTH * scale

    grid = np.zeros((rows * tile_h + (rows - 1) * padding, cols * tile_w + (cols - 1) * padding, 4), dtype=np.uint8)
    for i, display in enumerate(displays):
        row, col = divmod(i, cols)
        top, left = row * (tile_h + padding), col * (tile_w + padding)
        grid[top:top + tile_h, left:left + tile_w, :3] = chip8_display_to_rgb(display, scale, on_color, off_color)
        grid[top:top + tile_h, left:left + tile_w, 3] = 255
    return grid


def save_screenshot(
    display: jnp.ndarray,
    filename: str,
    scale: int = 8,
    color_scheme: str = "classic",
) -> Image.Image:
    """Save one display as an image file, format picked from the extension."""
    on_color, off_color = create_color_scheme(color_scheme)
    image = Image.fromarray(chip8_display_to_rgb(display, scale, on_color, off_color))
    image.save(filename)
    return image


def _intensities(displays: np.ndarray, persistence: bool) -> Iterator[np.ndarray]:
    """Per-frame pixel brightness in [0, 1], shape (32, 64)."""
    glow = np.zeros((SCREEN_HEIGHT, SCREEN_WIDTH), dtype=np.float32)
    for display in displays:
        lit = display.T.astype(np.float32)
        if persistence:
            # Phosphor fades out instead of switching off at once
            glow = np.minimum(glow * PHOSPHOR_DECAY + lit, 1.0)
            yield glow
        else:
            yield lit


def create_video(
        displays: np.ndarray,
        filename: Optional[str] = None,
        fps: float = 60.0,
        scale: int = 8,
        color_scheme: str = "classic",
        persistence: bool = True,
        display: bool = False
) -> None:
    """Save and/or show a sequence of displays as a video.

    Args:
        displays: Display frames with shape (N, 64, 32)
        filename: If provided, write an MP4 file here
        fps: Video frame rate
        scale: Upscaling factor
        color_scheme: Color scheme name
        persistence: Simulate phosphor afterglow
        display: Show the frames in a window, 'q' or ESC stops playback
    """
    if filename is None and not display:
        return
    displays = _check_frames(displays)
    if displays.ndim != 3:
        raise ValueError(f"Expected displays of shape (N, 64, 32), got {displays.shape}")

    on_color, off_color = (np.array(c, dtype=np.float32) for c in create_color_scheme(color_scheme))
    size = (SCREEN_WIDTH * scale, SCREEN_HEIGHT * scale)
    writer = cv2.VideoWriter(filename, cv2.VideoWriter_fourcc(*"mp4v"), fps, size) if filename else None
    window = "CHIP-8 (q to quit)"
    delay_ms = max(1, int(1000 / fps))

    try:
        for intensity in _intensities(displays, persistence):
            rgb = off_color + intensity[..., None] * (on_color - off_color)
            frame = cv2.cvtColor(_upscale(rgb.astype(np.uint8), scale), cv2.COLOR_RGB2BGR)
            if writer is not None:
                writer.write(frame)
            if display:
                cv2.imshow(window, frame)
                if cv2.waitKey(delay_ms) & 0xFF in (ord("q"), 27):
                    break
    finally:
        if writer is not None:
            writer.release()
        if display:
            cv2.destroyAllWindows()
