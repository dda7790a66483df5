"""原子文件写入 -- 临时文件 + os.replace

写入失败时目标文件保持原样，临时文件被清理。
"""

import os
import tempfile
from pathlib import Path


def write_text_atomic(path: Path, content: str) -> None:
    """整文件覆盖写入

    Args:
        path: 目标文件路径（所在目录必须已存在）
        content: 完整文件内容

    Raises:
        OSError: 写入或替换失败
    """
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        # 替换成功后 tmp 已不存在
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
