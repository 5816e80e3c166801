# -*- coding: utf-8 -*-
"""
饱和率模块
提供人工饱和（截断）与局部饱和像素比例计算
"""

import numpy as np
from scipy.ndimage import uniform_filter

from .window_stats import DEFAULT_BOUNDARY_MODE, validate_window_size
from ..errors import ConfigurationError


def validate_saturation_level(level: float) -> float:
    """
    验证饱和上限

    抛出:
        ConfigurationError: 非正数或非有限值
    """
    try:
        level = float(level)
    except (TypeError, ValueError):
        raise ConfigurationError(f"饱和上限必须为数值，当前为{level!r}")
    if not np.isfinite(level) or level <= 0:
        raise ConfigurationError(f"饱和上限必须为正的有限值，当前为{level}")
    return level


def saturation_mask(frame: np.ndarray, level: float) -> np.ndarray:
    """
    饱和像素掩码（像素值 >= 阈值）

    参数:
        frame: 二维数组
        level: 阈值（绝对强度）

    返回:
        bool 数组
    """
    return np.asarray(frame) >= level


def saturation_ratio(frame: np.ndarray,
                     level: float,
                     size: int,
                     mode: str = DEFAULT_BOUNDARY_MODE) -> np.ndarray:
    """
    NxN 窗口内的饱和像素比例

    参数:
        frame: 二维数组
        level: 阈值（绝对强度）
        size: 窗口边长 N
        mode: 边界延拓方式

    返回:
        饱和率 [0, 1] (float64)
    """
    size = validate_window_size(size)
    indicator = saturation_mask(frame, level).astype(np.float64)
    ratio = uniform_filter(indicator, size=size, mode=mode)
    # 窗口内饱和像素数为整数，取整消除盒式滤波的累加舍入
    area = size * size
    return np.clip(np.round(ratio * area) / area, 0.0, 1.0)


def clamp_to_level(frame: np.ndarray, level: float) -> np.ndarray:
    """
    人工饱和：将 >= 阈值的像素截断为阈值

    模拟传感器上限为该阈值时的读数

    参数:
        frame: 二维数组
        level: 阈值（绝对强度）

    返回:
        截断后的 float64 副本
    """
    clamped = np.array(frame, dtype=np.float64, copy=True)
    clamped[clamped >= level] = level
    return clamped


def threshold_levels(saturation_level: float, fractions) -> list:
    """
    满量程比例转换为绝对阈值

    参数:
        saturation_level: 饱和上限
        fractions: 满量程比例序列（首项为 1.0，严格递减且在 (0, 1] 内）

    返回:
        绝对阈值列表
    """
    fractions = [float(f) for f in fractions]
    if not fractions:
        raise ConfigurationError("阈值层级不能为空")
    if fractions[0] != 1.0:
        raise ConfigurationError(f"首个阈值层级必须为满量程 1.0: {fractions}")
    if any(f <= 0 or f > 1 for f in fractions):
        raise ConfigurationError(f"阈值层级必须在 (0, 1] 内: {fractions}")
    if any(b >= a for a, b in zip(fractions, fractions[1:])):
        raise ConfigurationError(f"阈值层级必须严格递减: {fractions}")
    return [f * saturation_level for f in fractions]
