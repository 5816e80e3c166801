# -*- coding: utf-8 -*-
"""
激光散斑过曝校正 - specklecorr

部分饱和的散斑图像序列会使窗口对比度估计偏低。本包在多个人工饱和
阈值下统计对比度与饱和率，外推到零饱和并进行经验偏差校正和数值修复。

快速开始:
    from specklecorr import OverExposureCorrectionService, WindowConfig

    service = OverExposureCorrectionService(
        window_config=WindowConfig(size=7),
        saturation_level=255,
        iterations=1
    )
    result = service.correct_files(['frame_001.tiff', 'frame_002.tiff'])
    k_raw, k_corrected, r_saturation = result.as_tuple()
"""

__version__ = '1.0.0'

# 服务层 API（推荐使用）
from .services import (
    OverExposureCorrectionService,
    correct_overexposure
)

# 异常
from .errors import ConfigurationError

# 数据模型
from .data.models import (
    WindowConfig,
    CorrectionConfig,
    CorrectionModel,
    SweepResult,
    RepairStats,
    CorrectionResult,
    BatchProcessResult
)

# 数据IO
from .data.io import (
    read_speckle_image,
    save_contrast_map,
    load_contrast_map,
    save_inverse_k2_preview,
    list_image_files,
    save_correction_config,
    load_correction_config
)

# 数值转换
from .data.converters import (
    default_saturation_level,
    contrast_to_inverse_k2
)

# 核心算法（高级用户）
from .core import (
    local_mean_std,
    saturation_ratio,
    frame_contrast,
    SweepAccumulator,
    extrapolate_kappa_squared,
    apply_correction,
    region_fill
)

__all__ = [
    # Version
    '__version__',
    # Services (主要API)
    'OverExposureCorrectionService',
    'correct_overexposure',
    # Errors
    'ConfigurationError',
    # Models
    'WindowConfig',
    'CorrectionConfig',
    'CorrectionModel',
    'SweepResult',
    'RepairStats',
    'CorrectionResult',
    'BatchProcessResult',
    # IO
    'read_speckle_image',
    'save_contrast_map',
    'load_contrast_map',
    'save_inverse_k2_preview',
    'list_image_files',
    'save_correction_config',
    'load_correction_config',
    # Converters
    'default_saturation_level',
    'contrast_to_inverse_k2',
    # Core (advanced)
    'local_mean_std',
    'saturation_ratio',
    'frame_contrast',
    'SweepAccumulator',
    'extrapolate_kappa_squared',
    'apply_correction',
    'region_fill'
]
