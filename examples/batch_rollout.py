"""Run many emulators side by side with jax.vmap and render the result.

Every instance starts from its own PRNG key, so the same ROM draws different
random glyphs on each screen.
"""

import argparse
import time

import jax
import numpy as np

from chipax import Chip8Runner, EmulatorConfig, nibbles_to_instruction
from chipax.rendering import batch_render, create_video
from PIL import Image

# Draw random hex glyphs at random positions, forever
RANDOM_GLYPHS = b"".join([
    nibbles_to_instruction(0xC, 0x0, 0x3, 0xF),  # V0 = rand & 0x3F
    nibbles_to_instruction(0xC, 0x1, 0x1, 0xF),  # V1 = rand & 0x1F
    nibbles_to_instruction(0xC, 0x2, 0x0, 0xF),  # V2 = rand & 0x0F
    nibbles_to_instruction(0xF, 0x2, 0x2, 0x9),  # I = glyph V2
    nibbles_to_instruction(0xD, 0x0, 0x1, 0x5),  # draw
    nibbles_to_instruction(0x1, 0x2, 0x0, 0x0),  # jump 0x200
])


def main():
    parser = argparse.ArgumentParser(description="Batched CHIP-8 rollout")
    parser.add_argument("--instances", type=int, default=16)
    parser.add_argument("--frames", type=int, default=60)
    parser.add_argument("--output", default="batch.png")
    parser.add_argument("--video", default=None, help="Also save the first instance as MP4")
    args = parser.parse_args()

    runner = Chip8Runner(RANDOM_GLYPHS, EmulatorConfig(instruction_frequency=600, fps=60))

    def rollout(rng):
        state = runner.reset(rng)

        def frame(state, _):
            state, _ = runner.run_frame(state, 0)
            return state, state.display

        return jax.lax.scan(frame, state, length=args.frames)

    rngs = jax.random.split(jax.random.PRNGKey(0), args.instances)

    start = time.perf_counter()
    compiled = jax.jit(jax.vmap(rollout)).lower(rngs).compile()
    print(f"Compilation time (s): {time.perf_counter() - start:.2f}")

    start = time.perf_counter()
    _, displays = jax.block_until_ready(compiled(rngs))
    elapsed = time.perf_counter() - start
    instructions = args.instances * args.frames * runner.instructions_per_frame
    print(f"Execution time (s): {elapsed:.3f} ({instructions / elapsed:,.0f} instructions/s)")

    displays = np.asarray(displays)
    Image.fromarray(batch_render(displays[:, -1])).save(args.output)
    print(f"Final screens saved to {args.output}")

    if args.video:
        create_video(displays[0], filename=args.video, fps=60)
        print(f"Video saved to {args.video}")


if __name__ == "__main__":
    main()
