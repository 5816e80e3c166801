# -*- coding: utf-8 -*-
"""
服务层
提供业务流程编排和高级API
"""

from .correction_service import OverExposureCorrectionService, correct_overexposure

__all__ = [
    'OverExposureCorrectionService',
    'correct_overexposure'
]
