# -*- coding: utf-8 -*-
"""
窗口统计模块测试
"""

import pytest
import numpy as np

from specklecorr.core.window_stats import (
    local_mean,
    local_std,
    local_mean_std,
    validate_window_size
)
from specklecorr.errors import ConfigurationError


def _brute_force(frame, size):
    """逐像素计算（对称延拓，与 reflect 一致）"""
    r = size // 2
    padded = np.pad(frame.astype(np.float64), r, mode='symmetric')
    mean = np.zeros(frame.shape)
    std = np.zeros(frame.shape)
    for y in range(frame.shape[0]):
        for x in range(frame.shape[1]):
            window = padded[y:y + size, x:x + size]
            mean[y, x] = window.mean()
            std[y, x] = window.std()
    return mean, std


class TestLocalMeanStd:
    """local_mean / local_std 测试"""

    def test_constant_frame(self):
        """测试常数帧：均值等于常数，标准差为0（包括边界）"""
        frame = np.full((10, 12), 100.0)
        mean, std = local_mean_std(frame, 3)

        np.testing.assert_allclose(mean, 100.0)
        np.testing.assert_allclose(std, 0.0, atol=1e-4)

    def test_same_shape(self):
        """测试输出尺寸与输入一致"""
        frame = np.arange(35, dtype=np.uint8).reshape(5, 7)
        assert local_mean(frame, 5).shape == frame.shape
        assert local_std(frame, 5).shape == frame.shape

    def test_matches_brute_force(self, rng):
        """测试与逐窗口计算一致（总体标准差）"""
        frame = rng.integers(0, 255, size=(9, 11)).astype(np.uint8)
        mean, std = local_mean_std(frame, 3)
        expected_mean, expected_std = _brute_force(frame, 3)

        np.testing.assert_allclose(mean, expected_mean, rtol=1e-9, atol=1e-9)
        np.testing.assert_allclose(std, expected_std, rtol=1e-6, atol=1e-5)

    def test_integer_input_widened(self):
        """测试整数输入不溢出"""
        frame = np.full((6, 6), 65535, dtype=np.uint16)
        mean, std = local_mean_std(frame, 3)

        assert mean.dtype == np.float64
        np.testing.assert_allclose(mean, 65535.0)
        np.testing.assert_allclose(std, 0.0, atol=0.05)

    def test_std_non_negative(self, rng):
        """测试标准差非负"""
        frame = rng.exponential(100.0, size=(20, 20))
        assert np.all(local_std(frame, 7) >= 0)

    def test_zero_region_next_to_bright(self, dark_edge_frames):
        """测试亮区旁的全零窗口：均值和标准差精确为0"""
        mean, std = local_mean_std(dark_edge_frames[0], 7)

        # 距亮区超过半个窗口的列
        np.testing.assert_array_equal(mean[:, 24:], 0.0)
        np.testing.assert_array_equal(std[:, 24:], 0.0)
        assert np.all(mean[:, :20] > 0)


class TestValidateWindowSize:
    """validate_window_size 测试"""

    @pytest.mark.parametrize('size', [0, -3])
    def test_non_positive(self, size):
        with pytest.raises(ConfigurationError, match="正整数"):
            validate_window_size(size)

    @pytest.mark.parametrize('size', [2.5, '7', True, None])
    def test_not_integer(self, size):
        with pytest.raises(ConfigurationError):
            validate_window_size(size)

    def test_numpy_integer(self):
        assert validate_window_size(np.int64(7)) == 7
