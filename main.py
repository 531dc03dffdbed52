"""
pygame front end for the chipvm CHIP-8 interpreter
"""

import argparse
import sys
import time

import numpy as np
import pygame

from chipvm import Chip8Machine, MachineConfig, Chip8Error
from chipvm.instructions.display import pixel_grid
from chipvm.keypad import keys_to_mask, mask_to_keys
from chipvm.logging import EmulatorLogger
from chipvm.rendering import create_color_scheme, render_ansi, save_screenshot

# COSMAC VIP hex keypad laid out on the left of a QWERTY keyboard
KEY_MAP = {
    pygame.K_1: 0x1, pygame.K_2: 0x2, pygame.K_3: 0x3, pygame.K_4: 0xC,
    pygame.K_q: 0x4, pygame.K_w: 0x5, pygame.K_e: 0x6, pygame.K_r: 0xD,
    pygame.K_a: 0x7, pygame.K_s: 0x8, pygame.K_d: 0x9, pygame.K_f: 0xE,
    pygame.K_z: 0xA, pygame.K_x: 0x0, pygame.K_c: 0xB, pygame.K_v: 0xF,
}


def terminal_beep():
    sys.stdout.write("\a")
    sys.stdout.flush()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run a CHIP-8 program.")
    parser.add_argument("rom", help="path to the CHIP-8 program")
    parser.add_argument("--ipf", type=int, default=10, help="instructions per frame")
    parser.add_argument("--fps", type=int, default=60, help="frames per second")
    parser.add_argument("--scale", type=int, default=10, help="window pixels per CHIP-8 pixel")
    parser.add_argument("--quirk", action="append", default=[],
                        help="enable a quirk: shift-uses-vy, bxnn, increment-index (repeatable)")
    parser.add_argument("--seed", type=int, default=0, help="random seed for CXNN")
    parser.add_argument("--color-scheme", default="classic", help="classic, amber, white or blue")
    parser.add_argument("--log-level", default="INFO", help="DEBUG traces every instruction")
    parser.add_argument("--headless", type=int, metavar="FRAMES",
                        help="run FRAMES frames without a window and print the final screen")
    return parser.parse_args(argv)


def run_headless(machine, frames):
    result = machine.run(frames, progress=True)
    print(render_ansi(machine.state.display))
    return 1 if result is not None and result.halted else 0


def run_window(machine, fps, scale, color_scheme):
    """Main loop: sample keys, run one frame, draw."""
    pygame.init()
    screen = pygame.display.set_mode((64 * scale, 32 * scale))
    pygame.display.set_caption("chipvm")
    clock = pygame.time.Clock()
    on_color, off_color = create_color_scheme(color_scheme)

    held = set()
    last_mask = 0
    paused = False
    running = True
    exit_code = 0

    while running:
        clock.tick(fps)

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif event.key == pygame.K_p:
                    paused = not paused
                elif event.key == pygame.K_F5:
                    machine.reset()
                    held.clear()
                elif event.key == pygame.K_F12:
                    filename = f"chipvm-{int(time.time())}.png"
                    save_screenshot(machine.state.display, filename, color_scheme=color_scheme)
                    machine.logger.info(f"Screenshot saved: {filename}")
                elif event.key in KEY_MAP:
                    held.add(KEY_MAP[event.key])
            elif event.type == pygame.KEYUP and event.key in KEY_MAP:
                held.discard(KEY_MAP[event.key])

        mask = keys_to_mask(held)
        if mask != last_mask:
            machine.logger.debug(f"Keys held: {[f'{key:X}' for key in mask_to_keys(mask)]}")
            last_mask = mask

        if not paused and not machine.halted:
            result = machine.step_frame(mask)
            if result.halted:
                exit_code = 1

        screen.fill(off_color)
        pixels = np.asarray(pixel_grid(machine.state.display))
        for y in range(32):
            for x in range(64):
                if pixels[y, x]:
                    pygame.draw.rect(screen, on_color, pygame.Rect(x * scale, y * scale, scale, scale))
        pygame.display.flip()

    pygame.quit()
    return exit_code


def main(argv=None):
    args = parse_args(argv)
    try:
        logger = EmulatorLogger(log_level=args.log_level)
    except ValueError as e:
        print(e, file=sys.stderr)
        return 2

    try:
        config = MachineConfig.from_dict({
            "quirks": args.quirk,
            "instructions_per_frame": args.ipf,
            "frames_per_second": args.fps,
            "seed": args.seed,
        })
        machine = Chip8Machine.from_rom(args.rom, config=config, beep=terminal_beep, logger=logger)
    except (OSError, Chip8Error) as e:
        logger.error(str(e))
        return 2

    if args.headless is not None:
        return run_headless(machine, args.headless)
    return run_window(machine, args.fps, args.scale, args.color_scheme)


if __name__ == "__main__":
    sys.exit(main())
