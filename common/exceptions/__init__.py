"""
统一的异常定义
Unified Exception Definitions

作者: mrkingu
日期: 2025-06-20
描述: 战斗服务的统一异常体系，区分验证、资源不存在、冲突与内部错误
"""
from typing import Any, Optional


class GameException(Exception):
    """游戏异常基类"""

    def __init__(self, code: int, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(message)

    def to_dict(self) -> dict:
        """转换为字典格式"""
        result = {
            "code": self.code,
            "message": self.message,
        }
        if self.data is not None:
            result["data"] = self.data
        return result


class ValidationError(GameException):
    """参数验证错误"""

    def __init__(self, message: str, field: Optional[str] = None):
        data = {"field": field} if field else None
        super().__init__(code=400, message=message, data=data)


class BusinessError(GameException):
    """业务逻辑错误"""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(code=code, message=message, data=data)


class ResourceNotFoundError(GameException):
    """资源不存在"""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            code=404,
            message=f"{resource} not found: {resource_id}",
            data={"resource": resource, "resource_id": resource_id}
        )


class ConflictError(GameException):
    """资源冲突错误"""

    def __init__(self, message: str, data: Any = None):
        super().__init__(code=409, message=message, data=data)


class ServerError(GameException):
    """服务器内部错误"""

    def __init__(self, message: str = "Internal server error", data: Any = None):
        super().__init__(code=500, message=message, data=data)


# 错误码定义
class ErrorCode:
    """统一错误码"""

    # 成功
    SUCCESS = 0

    # 客户端错误 (4xx)
    INVALID_PARAMS = 400
    NOT_FOUND = 404
    CONFLICT = 409

    # 服务器错误 (5xx)
    SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503

    # 业务错误 (1000+)
    USER_NOT_FOUND = 1001

    # 战斗相关错误 (2000+)
    BATTLE_NOT_FOUND = 2001
    BATTLE_ALREADY_ENDED = 2002
    SKILL_NOT_FOUND = 2003
    SKILL_NOT_EQUIPPED = 2004
    ENEMY_NOT_FOUND = 2005
    BATTLE_NOT_FINISHED = 2006
    BATTLE_NOT_WON = 2007
    NOT_BATTLE_PARTICIPANT = 2008
    NO_ENEMY_AVAILABLE = 2009
    TURN_CONFLICT = 2010
    REWARD_ALREADY_CLAIMED = 2011


# 预定义的业务异常
class UserNotFoundError(ResourceNotFoundError):
    """用户不存在异常"""

    def __init__(self, user_id: str):
        super().__init__("User", user_id)


class BattleNotFoundError(ResourceNotFoundError):
    """战斗不存在异常"""

    def __init__(self, battle_id: str):
        super().__init__("Battle", battle_id)


class SkillNotFoundError(ResourceNotFoundError):
    """技能不存在异常"""

    def __init__(self, skill_id: str):
        super().__init__("Skill", skill_id)


class EnemyNotFoundError(ResourceNotFoundError):
    """敌人模板不存在异常"""

    def __init__(self, enemy_id: str):
        super().__init__("Enemy", enemy_id)


class BattleAlreadyFinishedError(BusinessError):
    """战斗已结束异常"""

    def __init__(self, battle_id: str):
        super().__init__(
            code=ErrorCode.BATTLE_ALREADY_ENDED,
            message=f"Battle already finished: {battle_id}",
            data={"battle_id": battle_id}
        )


class BattleNotFinishedError(BusinessError):
    """战斗未结束异常"""

    def __init__(self, battle_id: str):
        super().__init__(
            code=ErrorCode.BATTLE_NOT_FINISHED,
            message=f"Battle not finished yet: {battle_id}",
            data={"battle_id": battle_id}
        )


class BattleNotWonError(BusinessError):
    """玩家未获胜异常"""

    def __init__(self, user_id: str, battle_id: str):
        super().__init__(
            code=ErrorCode.BATTLE_NOT_WON,
            message=f"User {user_id} did not win battle {battle_id}",
            data={"user_id": user_id, "battle_id": battle_id}
        )


class NotBattleParticipantError(BusinessError):
    """非战斗参与者异常"""

    def __init__(self, user_id: str, battle_id: str):
        super().__init__(
            code=ErrorCode.NOT_BATTLE_PARTICIPANT,
            message=f"User {user_id} is not a participant of battle {battle_id}",
            data={"user_id": user_id, "battle_id": battle_id}
        )


class NoEnemyAvailableError(BusinessError):
    """没有可用敌人异常"""

    def __init__(self, difficulty: str):
        super().__init__(
            code=ErrorCode.NO_ENEMY_AVAILABLE,
            message=f"No enemy template available for difficulty: {difficulty}",
            data={"difficulty": difficulty}
        )


class TurnConflictError(ConflictError):
    """回合并发冲突异常"""

    def __init__(self, battle_id: str, expected_turn: Optional[int] = None):
        data = {"battle_id": battle_id, "error_code": ErrorCode.TURN_CONFLICT}
        if expected_turn is not None:
            data["expected_turn"] = expected_turn
        super().__init__(
            f"Concurrent turn processing for battle: {battle_id}",
            data=data
        )


class RewardAlreadyClaimedError(ConflictError):
    """奖励已领取异常"""

    def __init__(self, user_id: str, battle_id: str):
        super().__init__(
            f"Rewards already claimed for battle {battle_id}",
            data={
                "user_id": user_id,
                "battle_id": battle_id,
                "error_code": ErrorCode.REWARD_ALREADY_CLAIMED
            }
        )


def create_error_response(exception: GameException) -> dict:
    """
    创建标准错误响应

    Args:
        exception: 游戏异常对象

    Returns:
        标准错误响应字典
    """
    import time

    response = {
        "code": exception.code,
        "message": exception.message,
        "timestamp": int(time.time())
    }

    if exception.data is not None:
        response["data"] = exception.data

    return response


def handle_exception(func):
    """
    异常处理装饰器

    自动捕获并转换异常为标准响应格式
    """
    import functools
    import logging

    logger = logging.getLogger(func.__module__)

    @functools.wraps(func)
    async def async_wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except GameException as e:
            logger.warning(f"Business exception in {func.__name__}: {e}")
            return create_error_response(e)
        except Exception as e:
            logger.error(f"Unexpected exception in {func.__name__}: {e}", exc_info=True)
            server_error = ServerError("Internal server error")
            return create_error_response(server_error)

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except GameException as e:
            logger.warning(f"Business exception in {func.__name__}: {e}")
            return create_error_response(e)
        except Exception as e:
            logger.error(f"Unexpected exception in {func.__name__}: {e}", exc_info=True)
            server_error = ServerError("Internal server error")
            return create_error_response(server_error)

    import asyncio
    if asyncio.iscoroutinefunction(func):
        return async_wrapper
    else:
        return sync_wrapper
