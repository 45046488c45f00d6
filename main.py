"""
CHIP-8 emulator front end: pygame window or headless run
"""

import argparse
import sys

import jax
import numpy as np
import pygame

from chipax import Chip8Runner, RomTooLargeError, load_config, reset_state, load_rom
from chipax.logging import get_logger
from chipax.rendering import chip8_display_to_rgb, create_color_scheme, save_screenshot

# Classic COSMAC VIP keypad on the left side of a QWERTY keyboard
#   1 2 3 C      1 2 3 4
#   4 5 6 D  ->  Q W E R
#   7 8 9 E      A S D F
#   A 0 B F      Z X C V
KEY_MAP = {
    pygame.K_1: 0x1, pygame.K_2: 0x2, pygame.K_3: 0x3, pygame.K_4: 0xC,
    pygame.K_q: 0x4, pygame.K_w: 0x5, pygame.K_e: 0x6, pygame.K_r: 0xD,
    pygame.K_a: 0x7, pygame.K_s: 0x8, pygame.K_d: 0x9, pygame.K_f: 0xE,
    pygame.K_z: 0xA, pygame.K_x: 0x0, pygame.K_c: 0xB, pygame.K_v: 0xF,
}


def draw_overlay_text(surface, text_lines, position, font, bg_color=(0, 0, 0), text_color=(255, 255, 255), alpha=120):
    """Draw text with semi-transparent background overlay"""
    if not text_lines:
        return

    line_height = font.get_height()
    max_width = max(font.size(line)[0] for line in text_lines)
    overlay = pygame.Surface((max_width + 16, len(text_lines) * line_height + 8))
    overlay.set_alpha(alpha)
    overlay.fill(bg_color)
    surface.blit(overlay, position)

    x, y = position
    for i, line in enumerate(text_lines):
        text_surface = font.render(line, True, text_color)
        surface.blit(text_surface, (x + 8, y + 4 + i * line_height))


def run_emulator(runner: Chip8Runner):
    """Interactive loop: one runner frame per display frame"""
    config = runner.config
    logger = runner.logger
    scale = config.scale
    on_color, off_color = create_color_scheme(config.color_scheme)

    pygame.init()
    screen = pygame.display.set_mode((64 * scale, 32 * scale))
    pygame.display.set_caption(f"CHIP-8 - {runner.rom_path or 'ROM'}")
    clock = pygame.time.Clock()
    font = pygame.font.Font(None, 18)

    state = runner.reset()
    input_mask = 0
    running = True
    paused = False
    halted = False
    show_debug = False

    logger.info("Controls: ESC=Quit, P=Pause, F5=Reset, F1=Debug overlay")

    while running:
        clock.tick(config.fps)

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif event.key == pygame.K_p:
                    paused = not paused
                elif event.key == pygame.K_F1:
                    show_debug = not show_debug
                elif event.key == pygame.K_F5:
                    state = load_rom(reset_state(state), runner.rom_data)
                    halted = False
                    logger.info("Reset")
                elif event.key in KEY_MAP:
                    input_mask |= 1 << KEY_MAP[event.key]
            elif event.type == pygame.KEYUP:
                if event.key in KEY_MAP:
                    input_mask &= ~(1 << KEY_MAP[event.key])

        if not paused and not halted:
            state, error = runner.run_frame(state, input_mask)
            state, halted = runner.handle_error(state, error)
            if halted:
                logger.warning("Emulation halted, press F5 to reset")

        frame = chip8_display_to_rgb(state.display, scale, on_color, off_color)
        pygame.surfarray.blit_array(screen, np.ascontiguousarray(frame.transpose(1, 0, 2)))

        # Sound is not synthesized; the border shows when the tone would play
        if int(state.sound_timer) > 0:
            pygame.draw.rect(screen, on_color, screen.get_rect(), width=max(1, scale // 2))

        if show_debug:
            debug_lines = [
                f"PC: 0x{int(state.pc):03X}  I: 0x{int(state.I):03X}  SP: {int(state.stack_pointer)}",
                f"DT: {int(state.delay_timer)}  ST: {int(state.sound_timer)}",
                " ".join(f"V{j:X}:{int(state.V[j]):02X}" for j in range(8)),
                " ".join(f"V{j:X}:{int(state.V[j]):02X}" for j in range(8, 16)),
                "HALTED" if halted else ("PAUSED" if paused else "RUNNING"),
            ]
            draw_overlay_text(screen, debug_lines, (5, 5), font, alpha=100)

        pygame.display.flip()

    pygame.quit()


def run_headless(runner: Chip8Runner, steps: int, screenshot: str = None) -> int:
    """Run ``steps`` instructions without a window; returns a process exit code"""
    logger = runner.logger
    state = runner.reset()
    remaining = steps
    while remaining > 0:
        # Same scan length on every resume, only the limit shrinks
        state, error, executed = runner.run(state, steps, True, remaining)
        state, halted = runner.handle_error(state, error)
        if halted:
            return 1
        # A skipped instruction counts as run
        remaining -= int(executed) + (int(error) != 0)
        if int(error) != 0:
            logger.debug(f"Resuming at 0x{int(state.pc):03X}")
    logger.info(f"Finished at PC=0x{int(state.pc):03X}")
    if screenshot:
        save_screenshot(state.display, screenshot, runner.config.scale, runner.config.color_scheme)
        logger.info(f"Screenshot saved: {screenshot}")
    return 0


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="CHIP-8 emulator")
    parser.add_argument("rom", help="Path to the ROM file")
    parser.add_argument("--config", default=None, help="YAML configuration file")
    parser.add_argument("--headless", action="store_true", help="Run without a window")
    parser.add_argument("--steps", type=int, default=10_000, help="Instructions to run in headless mode")
    parser.add_argument("--screenshot", default=None, help="Save the final display (headless mode)")
    parser.add_argument("--scale", type=int, default=None, help="Pixel upscaling factor")
    parser.add_argument("--color-scheme", default=None, help="Rendering color scheme")
    parser.add_argument("overrides", nargs="*", help="Configuration overrides, e.g. fps=30 quirks.clip_sprites=true")
    return parser.parse_intermixed_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    overrides = list(args.overrides)
    if args.scale is not None:
        overrides.append(f"scale={args.scale}")
    if args.color_scheme is not None:
        overrides.append(f"color_scheme={args.color_scheme}")
    config = load_config(args.config, overrides)
    logger = get_logger(log_level=config.log_level)

    try:
        runner = Chip8Runner(args.rom, config, logger)
    except (OSError, RomTooLargeError) as e:
        logger.error(f"Cannot load ROM: {e}")
        return 1
    logger.info(f"Loaded: {args.rom} ({len(runner.rom_data)} bytes) on {jax.default_backend()}")

    if args.headless:
        return run_headless(runner, args.steps, args.screenshot)
    run_emulator(runner)
    return 0


if __name__ == "__main__":
    sys.exit(main())
