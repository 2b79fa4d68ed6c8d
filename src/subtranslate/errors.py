from __future__ import annotations


class SubtranslateError(Exception):
    """
    subtranslate 所有自定义异常的基类。
    """


class ConfigurationError(SubtranslateError):
    """
    配置错误：缺少必需的 API Key、未知的翻译引擎等。

    这类错误在发起任何网络请求之前抛出，不会被重试。
    """


class SubtitleNotFoundError(SubtranslateError):
    """
    字幕源中找不到可用的字幕（目标语言与回退语言均没有）。
    """


class BackendError(SubtranslateError):
    """
    远程服务调用失败：网络错误、超时、HTTP 错误或响应格式异常。
    """
