import random

import mmh3
import numpy as np
import pytest
import pyarrow as pa
from hypothesis import given, settings, strategies as st

from murmur_bloom.algorithms.murmur3 import MASK64, fmix64, hash128, hash128_int, rotl64

SEED = 42


class TestReferenceVectors:
    def test_empty_input_seed_zero(self):
        assert hash128(b"", 0) == (0, 0)

    def test_foo_seed_zero(self):
        assert hash128(b"foo", 0) == (16316970633193145697, 9128664383759220103)

    def test_foo_seed_42_as_int(self):
        assert hash128_int(b"foo", 42) == 215966891540331383248189432718888555506

    def test_int_layout(self):
        h1, h2 = hash128(b"hello world", 7)
        assert hash128_int(b"hello world", 7) == (h2 << 64) | h1


class TestAgainstMmh3:
    @given(st.binary(max_size=100), st.integers(0, 2**32 - 1))
    def test_matches_mmh3(self, data, seed):
        assert hash128(data, seed) == mmh3.hash64(data, seed, signed=False)

    @pytest.mark.parametrize("length", range(32))
    def test_every_tail_length(self, length):
        data = bytes(range(1, length + 1))
        assert hash128(data, SEED) == mmh3.hash64(data, SEED, signed=False)
        assert hash128_int(data, SEED) == mmh3.hash128(data, SEED, signed=False)

    def test_tail_bytes_above_0x7f(self):
        # high bytes must not sign-extend into neighbouring lanes
        data = b"\xff" * 15
        assert hash128(data, 0) == mmh3.hash64(data, 0, signed=False)


class TestMixerProperties:
    @given(st.binary(), st.integers(0, 2**32 - 1))
    def test_deterministic(self, data, seed):
        assert hash128(data, seed) == hash128(data, seed)

    @given(st.binary())
    def test_halves_are_u64(self, data):
        h1, h2 = hash128(data, SEED)
        assert 0 <= h1 <= MASK64
        assert 0 <= h2 <= MASK64

    def test_buffer_inputs_agree(self):
        data = b"0123456789abcdefXYZ"
        expected = hash128(data, SEED)
        assert hash128(bytearray(data), SEED) == expected
        assert hash128(memoryview(data), SEED) == expected
        assert hash128(pa.py_buffer(data), SEED) == expected

    def test_seed_changes_output(self):
        assert hash128(b"key", 1) != hash128(b"key", 2)

    @pytest.mark.parametrize("seed", [-1, 2**32])
    def test_seed_out_of_range(self, seed):
        with pytest.raises(ValueError):
            hash128(b"key", seed)

    def test_seed_must_be_integral(self):
        with pytest.raises(TypeError):
            hash128(b"key", 1.5)
        assert hash128(b"key", np.uint32(7)) == hash128(b"key", 7)

    def test_avalanche(self):
        """A single flipped input bit flips about half of the 128 output bits"""
        rng = random.Random(SEED)
        flips = []
        for _ in range(300):
            data = bytearray(rng.getrandbits(8) for _ in range(24))
            base = hash128_int(bytes(data), SEED)
            bit = rng.randrange(len(data) * 8)
            data[bit // 8] ^= 1 << (bit % 8)
            flips.append(bin(base ^ hash128_int(bytes(data), SEED)).count("1"))
        mean = np.mean(flips)
        assert 60 < mean < 68, f"mean flipped bits {mean:.2f}"


class TestHelpers:
    def test_rotl64_wraps(self):
        assert rotl64(1 << 63, 1) == 1
        assert rotl64(0x0123456789ABCDEF, 64 - 4) == 0xF0123456789ABCDE

    def test_fmix64_zero_fixed_point(self):
        assert fmix64(0) == 0

    @settings(max_examples=50)
    @given(st.integers(0, MASK64))
    def test_fmix64_is_64_bit(self, k):
        assert 0 <= fmix64(k) <= MASK64
