# -*- coding: utf-8 -*-
"""
线性外推模块
在 K² 域沿饱和率方向线性外推到零饱和
"""

import numpy as np
from typing import Sequence

from .. import config
from ..errors import ConfigurationError

DEFAULT_EPS = config.EPS


def first_order_extrapolation(k0_sq: np.ndarray,
                              k1_sq: np.ndarray,
                              r0: np.ndarray,
                              r1: np.ndarray,
                              eps: float = DEFAULT_EPS) -> np.ndarray:
    """
    一阶外推

    由相邻两个阈值层级的 (R, K²) 点外推 R=0 处的 K²:
        K_A = K0² - R0 * (K1² - K0²) / (R1 - R0 + eps)

    参数:
        k0_sq: 较高阈值层级的 K²
        k1_sq: 较低阈值层级的 K²
        r0: 较高阈值层级的饱和率
        r1: 较低阈值层级的饱和率
        eps: 分母保护项（两层饱和率相同时避免除零）

    返回:
        外推的 K²
    """
    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        return k0_sq - r0 * (k1_sq - k0_sq) / (r1 - r0 + eps)


def nested_extrapolation(ka: np.ndarray,
                         kb: np.ndarray,
                         r0: np.ndarray,
                         r1: np.ndarray,
                         eps: float = DEFAULT_EPS) -> np.ndarray:
    """
    嵌套外推（对外推结果再外推）

        K_C = |K_A - R0 * (K_B - K_A) / (R1 - R0 + eps)|

    差分斜率 K_B - K_A 在真实 R→K² 曲线拐点附近可能变号，
    取绝对值避免校正方向反转；K_C 非负时取绝对值不改变结果

    参数:
        ka: 由层级 0、1 得到的一阶外推
        kb: 由层级 1、2 得到的一阶外推
        r0: 层级 0 的饱和率
        r1: 层级 1 的饱和率
        eps: 分母保护项

    返回:
        外推的 K²（非负）
    """
    return np.abs(first_order_extrapolation(ka, kb, r0, r1, eps))


def validate_level_count(count: int) -> int:
    """
    验证两步外推的阈值层级数量

    抛出:
        ConfigurationError: 层级数量不是 2 或 3
    """
    if count not in (2, 3):
        raise ConfigurationError(f"两步外推需要2或3个阈值层级，当前为{count}")
    return count


def extrapolate_kappa_squared(k_maps: Sequence[np.ndarray],
                              r_maps: Sequence[np.ndarray],
                              eps: float = DEFAULT_EPS) -> np.ndarray:
    """
    根据层级数量选择外推方式

    - 2 个层级: 一阶外推 K_A
    - 3 个层级: 由层级 1、2 得到 K_B，再嵌套外推 |K_C|

    参数:
        k_maps: 各层级对比度图（对比度单位，按阈值递减排列）
        r_maps: 各层级饱和率图
        eps: 分母保护项

    返回:
        零饱和处的 K² 估计

    抛出:
        ConfigurationError: 层级数量不是 2 或 3
    """
    if len(k_maps) != len(r_maps):
        raise ConfigurationError(f"对比度图与饱和率图数量不一致: {len(k_maps)} != {len(r_maps)}")
    validate_level_count(len(k_maps))

    with np.errstate(over='ignore', invalid='ignore'):
        k_sq = [np.asarray(k, dtype=np.float64) ** 2 for k in k_maps]
    r = [np.asarray(x, dtype=np.float64) for x in r_maps]

    ka = first_order_extrapolation(k_sq[0], k_sq[1], r[0], r[1], eps)
    if len(k_sq) == 2:
        return ka

    kb = first_order_extrapolation(k_sq[1], k_sq[2], r[1], r[2], eps)
    return nested_extrapolation(ka, kb, r[0], r[1], eps)
