"""模型输出文本的后处理工具。"""

from study_core.text.normalizer import normalize, normalize_heading

__all__ = ["normalize", "normalize_heading"]
