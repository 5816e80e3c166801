# -*- coding: utf-8 -*-
"""
阈值扫描对比度模块
对每个阈值层级进行人工饱和，计算局部散斑对比度，并在序列上累加平均
"""

import numpy as np
from typing import Optional, Sequence, Tuple

from ..data.models import SweepResult
from ..data.converters import to_float_frame
from ..errors import ConfigurationError
from .window_stats import (
    DEFAULT_BOUNDARY_MODE,
    local_mean_std,
    validate_window_size,
    validate_boundary_mode
)
from .saturation import (
    clamp_to_level,
    saturation_ratio,
    threshold_levels,
    validate_saturation_level
)


def contrast_from_stats(mean: np.ndarray, std: np.ndarray) -> np.ndarray:
    """
    对比度 K = std / mean

    均值为 0 时得到 Inf/NaN，不在此处处理，由后续修复步骤吸收
    """
    with np.errstate(divide='ignore', invalid='ignore'):
        return std / mean


def frame_contrast(frame: np.ndarray,
                   level: float,
                   size: int,
                   mode: str = DEFAULT_BOUNDARY_MODE) -> np.ndarray:
    """
    单帧在指定阈值下的局部对比度

    先将 >= level 的像素截断为 level，再计算 std/mean

    参数:
        frame: 二维数组
        level: 阈值（绝对强度）
        size: 窗口边长 N
        mode: 边界延拓方式

    返回:
        对比度图 (float64)
    """
    mean, std = local_mean_std(clamp_to_level(frame, level), size, mode)
    return contrast_from_stats(mean, std)


class SweepAccumulator:
    """
    阈值扫描累加器

    逐帧累加各阈值层级的对比度和饱和率，result() 返回序列平均。
    求和满足交换律和结合律，可将多个部分累加器 merge 后再求平均
    """

    def __init__(self,
                 fractions: Sequence[float],
                 saturation_level: float,
                 size: int,
                 mode: str = DEFAULT_BOUNDARY_MODE):
        """
        初始化累加器

        参数:
            fractions: 满量程比例（如 (1.0, 0.8, 0.6)）
            saturation_level: 饱和上限
            size: 窗口边长 N
            mode: 边界延拓方式
        """
        self.saturation_level = validate_saturation_level(saturation_level)
        self.fractions: Tuple[float, ...] = tuple(float(f) for f in fractions)
        self.levels = threshold_levels(self.saturation_level, self.fractions)
        self.size = validate_window_size(size)
        self.mode = validate_boundary_mode(mode)

        self._shape: Optional[Tuple[int, int]] = None
        self._k_sums: list = []
        self._r_sums: list = []
        self._count = 0

    @property
    def frame_count(self) -> int:
        """已累加的帧数"""
        return self._count

    @property
    def shape(self) -> Optional[Tuple[int, int]]:
        return self._shape

    def _check_shape(self, shape: Tuple[int, ...]) -> None:
        if self._shape is None:
            self._shape = (int(shape[0]), int(shape[1]))
            self._k_sums = [np.zeros(self._shape) for _ in self.levels]
            self._r_sums = [np.zeros(self._shape) for _ in self.levels]
        elif tuple(shape) != self._shape:
            raise ConfigurationError(f"帧尺寸不一致: 期望{self._shape}，实际{tuple(shape)}")

    def add_frame(self, frame: np.ndarray) -> None:
        """
        累加一帧

        参数:
            frame: 二维数组（任意数值类型，内部拓宽为 float64）

        抛出:
            ConfigurationError: 非二维或尺寸与已累加帧不一致
        """
        values = to_float_frame(frame)
        self._check_shape(values.shape)

        for i, level in enumerate(self.levels):
            self._r_sums[i] += saturation_ratio(values, level, self.size, self.mode)
            self._k_sums[i] += frame_contrast(values, level, self.size, self.mode)
        self._count += 1

    def merge(self, other: 'SweepAccumulator') -> 'SweepAccumulator':
        """
        合并另一个部分累加器（并行归约）

        参数:
            other: 相同参数的累加器

        返回:
            self
        """
        if (other.fractions != self.fractions or other.size != self.size
                or other.mode != self.mode or other.saturation_level != self.saturation_level):
            raise ConfigurationError("只能合并参数相同的累加器")
        if other._count == 0:
            return self
        self._check_shape(other._shape)
        for i in range(len(self.levels)):
            self._k_sums[i] += other._k_sums[i]
            self._r_sums[i] += other._r_sums[i]
        self._count += other._count
        return self

    def result(self) -> SweepResult:
        """
        获取序列平均结果

        抛出:
            ConfigurationError: 尚未累加任何帧
        """
        if self._count == 0:
            raise ConfigurationError("图像序列为空")

        return SweepResult(
            levels=self.fractions,
            k_maps=[k / self._count for k in self._k_sums],
            r_maps=[r / self._count for r in self._r_sums],
            frame_count=self._count
        )


def sweep_sequence(frames,
                   fractions: Sequence[float],
                   saturation_level: float,
                   size: int,
                   mode: str = DEFAULT_BOUNDARY_MODE) -> SweepResult:
    """
    对整个序列执行阈值扫描

    参数:
        frames: 帧的可迭代对象
        fractions: 满量程比例
        saturation_level: 饱和上限
        size: 窗口边长 N
        mode: 边界延拓方式

    返回:
        SweepResult 对象
    """
    accumulator = SweepAccumulator(fractions, saturation_level, size, mode)
    for frame in frames:
        accumulator.add_frame(frame)
    return accumulator.result()
