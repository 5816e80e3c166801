# -*- coding: utf-8 -*-
"""
数据模型定义
使用 dataclass 定义清晰的数据结构，提升类型安全和代码可读性
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Tuple, Optional, List, Dict, Any
import numpy as np

from .. import config


# ==================== 配置类 ====================

@dataclass
class WindowConfig:
    """窗口配置"""
    size: int = config.WINDOW_SIZE
    boundary_mode: str = config.BOUNDARY_MODE


@dataclass
class CorrectionConfig:
    """
    校正系数配置

    经验系数离线标定，重新标定时只需修改此结构（或对应JSON文件），
    无需改动算法流程
    """
    c1: float = config.C1
    q1: float = config.Q1
    q2: float = config.Q2
    invalid_floor: float = config.INVALID_FLOOR
    eps: float = config.EPS
    one_step_levels: Tuple[float, ...] = config.ONE_STEP_LEVELS
    two_step_levels: Tuple[float, ...] = config.TWO_STEP_LEVELS
    version: str = "1.0"

    def __post_init__(self):
        self.one_step_levels = tuple(float(x) for x in self.one_step_levels)
        self.two_step_levels = tuple(float(x) for x in self.two_step_levels)

    def levels_for(self, model: 'CorrectionModel') -> Tuple[float, ...]:
        """获取指定校正模型使用的阈值层级"""
        if model is CorrectionModel.ONE_STEP:
            return self.one_step_levels
        return self.two_step_levels

    def to_dict(self) -> dict:
        """转换为字典"""
        data = asdict(self)
        data['one_step_levels'] = list(self.one_step_levels)
        data['two_step_levels'] = list(self.two_step_levels)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CorrectionConfig':
        """从字典创建（忽略未知字段）"""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


# ==================== 模型类 ====================

class CorrectionModel(Enum):
    """
    校正模型

    ONE_STEP: 仅使用满量程阈值，直接有理式校正
    TWO_STEP: 多阈值（2或3层）在 K² 域线性外推
    """
    ONE_STEP = 1
    TWO_STEP = 2

    @classmethod
    def from_iterations(cls, iterations: int) -> 'CorrectionModel':
        """根据迭代次数选择模型"""
        for member in cls:
            if member.value == iterations:
                return member
        raise ValueError(f"迭代次数只能为1或2，当前为{iterations}")


# ==================== 结果类 ====================

@dataclass
class SweepResult:
    """
    阈值扫描结果（序列平均）

    k_maps/r_maps 与 levels 一一对应，levels 按满量程比例递减排列
    """
    levels: Tuple[float, ...]
    k_maps: List[np.ndarray]
    r_maps: List[np.ndarray]
    frame_count: int

    @property
    def shape(self) -> Tuple[int, int]:
        return self.k_maps[0].shape

    @property
    def k_raw(self) -> np.ndarray:
        """满量程阈值下的原始对比度"""
        return self.k_maps[0]

    @property
    def r_primary(self) -> np.ndarray:
        """满量程阈值下的饱和率"""
        return self.r_maps[0]


@dataclass
class RepairStats:
    """修复统计"""
    nan_replaced: int = 0
    inf_replaced: int = 0
    region_filled: int = 0
    isolated_filled: int = 0
    raw_sanitized: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CorrectionResult:
    """
    过曝校正结果

    三个输出图与输入帧尺寸相同，K 为对比度单位（非平方），
    R 为满量程阈值下的饱和率
    """
    k_raw: np.ndarray
    k_corrected: np.ndarray
    r_saturation: np.ndarray
    frame_count: int
    model: CorrectionModel
    levels: Tuple[float, ...]
    window_size: int
    saturation_level: float
    repair: RepairStats = field(default_factory=RepairStats)

    @property
    def saturated_pixels(self) -> int:
        """饱和率大于0的像素数"""
        return int(np.count_nonzero(self.r_saturation > 0))

    def as_tuple(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """(K_raw, K_corrected, R_saturationratio)"""
        return self.k_raw, self.k_corrected, self.r_saturation

    @property
    def stats(self) -> dict:
        """获取统计信息字典"""
        total = int(self.k_raw.size)
        return {
            'frame_count': self.frame_count,
            'model': self.model.name,
            'levels': list(self.levels),
            'window_size': self.window_size,
            'saturation_level': self.saturation_level,
            'total_pixels': total,
            'saturated_pixels': self.saturated_pixels,
            'saturated_rate': self.saturated_pixels / total * 100 if total > 0 else 0.0,
            'mean_saturation_ratio': float(np.mean(self.r_saturation)) if total > 0 else 0.0,
            **self.repair.to_dict()
        }


@dataclass
class BatchProcessResult:
    """
    目录处理结果
    """
    input_files: List[str]
    result: CorrectionResult
    saved_paths: Dict[str, str] = field(default_factory=dict)
