"""Grave Scanner 异常体系

启动期错误（配置、初始化）不可恢复，进程不启动；
单次扫描错误可恢复，持久状态保持上一次成功扫描的结果。
逐行解析失败不是错误，不在此体系内。
"""


class GraveScannerError(Exception):
    """Grave Scanner 基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过下一次扫描恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class ConfigError(GraveScannerError):
    """配置错误（缺少 LOG_FILE_PATH、SCAN_INTERVAL 无法解析等）"""

    def __init__(self, message: str) -> None:
        super().__init__(message, recoverable=False)


class InitializationError(GraveScannerError):
    """初始化错误（数据目录无法创建等）"""

    def __init__(self, message: str) -> None:
        super().__init__(message, recoverable=False)


class StateCorruptedError(InitializationError):
    """持久化文件存在但内容损坏

    与文件不存在（首次运行）区分：缺失是正常状态，损坏必须显式失败。
    """

    def __init__(self, path: str, original_error: Exception) -> None:
        super().__init__(f"持久化文件已损坏: {path} -- {original_error}")
        self.path = path
        self.original_error = original_error


class ScanError(GraveScannerError):
    """单次扫描失败，进程继续运行，下次扫描可能成功"""


class SourceLogError(ScanError):
    """源日志无法打开、stat、seek 或读取"""

    def __init__(self, log_path: str, action: str, original_error: Exception) -> None:
        """
        Args:
            log_path: 源日志路径
            action: 失败的操作（open/stat/seek/read）
            original_error: 原始异常
        """
        super().__init__(f"源日志 {action} 失败: {log_path} -- {original_error}")
        self.log_path = log_path
        self.action = action
        self.original_error = original_error


class PersistError(ScanError):
    """持久化写入失败"""

    def __init__(self, path: str, original_error: Exception) -> None:
        super().__init__(f"持久化写入失败: {path} -- {original_error}")
        self.path = path
        self.original_error = original_error


class OffsetPersistError(PersistError):
    """offset 文件写入失败，内存中的 offset 不推进"""


class EventPersistError(PersistError):
    """事件文件写入失败，内存中的事件集合已更新"""
