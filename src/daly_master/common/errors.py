"""生成流程的错误分类。

- `GenerationFormatError`：模型返回的文本不是合法 JSON，或不满足幻灯片结构约束；
- `GenerationTransportError`：调用本身未能完成（网络、超时、限流、缺少凭证等）。

两者对最终用户呈现为同一条“生成失败”提示，区分只用于日志诊断。
"""

from typing import Optional


class GenerationError(Exception):
    """所有生成失败的基类。"""


class GenerationFormatError(GenerationError):
    """模型输出无法解析或不符合结构约束。"""

    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message)
        self.raw_text = raw_text


class GenerationTransportError(GenerationError):
    """对外部生成服务的调用失败。"""
