import random
import re

from backend.utils import EXAMPLE_PROMPTS, download_filename, gen_batch_id, random_prompt


def test_random_prompt_comes_from_examples():
    rng = random.Random(7)
    for _ in range(20):
        assert random_prompt(rng) in EXAMPLE_PROMPTS


def test_batch_ids_are_unique():
    assert len({gen_batch_id() for _ in range(50)}) == 50


def test_download_filename_is_timestamped_png():
    assert re.fullmatch(r"\d{13}\.png", download_filename())
