from .core.env import Env, get_env, get_env_flags, pick
from .core.logging import setup_logging

ENV: Env = get_env()
IS_LOCAL, IS_DEV, IS_TEST, IS_PROD = get_env_flags(ENV)[1:]

__all__ = ["Env", "ENV", "IS_LOCAL", "IS_DEV", "IS_TEST", "IS_PROD", "pick", "setup_logging"]
