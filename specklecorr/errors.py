# -*- coding: utf-8 -*-
"""
异常定义
"""


class ConfigurationError(ValueError):
    """
    配置错误

    窗口大小非法、饱和上限非法、序列为空或帧尺寸不一致时抛出，
    不产生部分结果
    """
