# -*- coding: utf-8 -*-
"""
偏差校正模块
提供经验偏差校正（单步有理式 / 两步二次项）及完整校正流程
"""

import logging
import numpy as np
from typing import Optional, Tuple

from ..data.models import CorrectionConfig, CorrectionModel, RepairStats, SweepResult
from ..errors import ConfigurationError
from .extrapolator import extrapolate_kappa_squared
from .repair import merge_with_raw, repair_corrected, sanitize_raw

logger = logging.getLogger(__name__)


# ==================== 经验校正 ====================

def rational_correction(k_raw: np.ndarray,
                        r0: np.ndarray,
                        config: Optional[CorrectionConfig] = None) -> np.ndarray:
    """
    单阈值有理式校正（低对比度范围标定）

    公式:
        K = K_raw / (1 - R0 + eps) * (1 + c1*R0) / (1 + q1*R0 + q2*R0²)

    参数:
        k_raw: 满量程阈值下的原始对比度
        r0: 满量程阈值下的饱和率
        config: 校正系数配置

    返回:
        校正后的对比度
    """
    if config is None:
        config = CorrectionConfig()

    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        k = k_raw / (1.0 - r0 + config.eps)
        return k * (1.0 + config.c1 * r0) / (1.0 + config.q1 * r0 + config.q2 * r0 ** 2)


def quadratic_correction(kappa_ext: np.ndarray, r0: np.ndarray) -> np.ndarray:
    """
    外推结果的二次残差校正，并回到对比度单位

    公式:
        K_D = K_ext + R0 / (1 + K_ext) * K_ext²
        K   = sqrt(K_D)

    K_D 为负时得到 NaN，由修复步骤替换为原始值

    参数:
        kappa_ext: 外推得到的 K²
        r0: 满量程阈值下的饱和率

    返回:
        校正后的对比度
    """
    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        kd = kappa_ext + r0 / (1.0 + kappa_ext) * kappa_ext ** 2
        return np.sqrt(kd)


# ==================== 校正模型 ====================

def correct_one_step(sweep: SweepResult, config: CorrectionConfig) -> np.ndarray:
    """单步校正：仅使用满量程层级"""
    return rational_correction(sweep.k_raw, sweep.r_primary, config)


def correct_two_step(sweep: SweepResult, config: CorrectionConfig) -> np.ndarray:
    """两步校正：K² 域外推后二次项校正"""
    kappa_ext = extrapolate_kappa_squared(sweep.k_maps, sweep.r_maps, config.eps)
    return quadratic_correction(kappa_ext, sweep.r_primary)


_MODEL_HANDLERS = {
    CorrectionModel.ONE_STEP: correct_one_step,
    CorrectionModel.TWO_STEP: correct_two_step
}


def apply_correction(sweep: SweepResult,
                     model: CorrectionModel,
                     config: Optional[CorrectionConfig] = None
                     ) -> Tuple[np.ndarray, np.ndarray, RepairStats]:
    """
    完整校正流程：外推/经验校正 -> 修复 -> 与原始值合并

    参数:
        sweep: 阈值扫描结果
        model: 校正模型
        config: 校正系数配置

    返回:
        (K_raw, K_corrected, RepairStats)，均为对比度单位，
        保证有限且非负

    抛出:
        ConfigurationError: 扫描层级与模型不匹配
    """
    if config is None:
        config = CorrectionConfig()

    if model is CorrectionModel.TWO_STEP and len(sweep.levels) < 2:
        raise ConfigurationError("两步校正至少需要2个阈值层级")

    k_raw, raw_fixed = sanitize_raw(sweep.k_raw)
    if raw_fixed:
        logger.info("原始对比度中 %d 个无效像素（局部均值为0或为负）已修复", raw_fixed)

    corrected = _MODEL_HANDLERS[model](sweep, config)
    corrected, stats = repair_corrected(corrected, k_raw, config.invalid_floor)
    stats.raw_sanitized = raw_fixed

    k_corrected = merge_with_raw(corrected, k_raw, sweep.r_primary)
    return k_raw, k_corrected, stats
