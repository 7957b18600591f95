"""商户配置

配置来自环境变量(可放在 .env 文件中)，加载后为不可变对象，
显式传入 CredentialStore，不再使用全局单例。
"""

import math
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from dotenv import load_dotenv
from loguru import logger

from .exceptions import ConfigurationError

# 默认商户编号，未指定商户时使用
DEFAULT_MERCHANT = 1

DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_READ_TIMEOUT = 30.0


@dataclass(frozen=True)
class MerchantConfig:
    """单个商户的配置，证书和密钥均为文件路径"""

    mch_id: str
    sign_key_path: str
    cert_path: str
    cert_password: str
    app_id: str | None = None
    public_key_path: str | None = None
    # 商户绑定的其他 appid，按应用编号区分
    app_ids: Mapping[int, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "app_ids", MappingProxyType(dict(self.app_ids)))


@dataclass(frozen=True)
class PayConfig:
    merchants: Mapping[int, MerchantConfig]
    spbill_create_ip: str | None = None
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT

    def __post_init__(self):
        # 冻结商户表，防止加载后被修改
        object.__setattr__(self, "merchants", MappingProxyType(dict(self.merchants)))

    @property
    def timeout(self) -> tuple[float, float]:
        return self.connect_timeout, self.read_timeout


def _parse_timeout(env, name, default):
    value = env.get(name)
    if not value:
        return default
    try:
        timeout = float(value)
    except ValueError:
        raise ConfigurationError(f"配置项 {name} 必须为数字: {value}")
    if not math.isfinite(timeout) or timeout <= 0:
        raise ConfigurationError(f"配置项 {name} 必须为大于0的有限数字: {value}")
    return timeout


def _parse_merchant_keys(raw):
    keys = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            keys.append(int(part))
        except ValueError:
            raise ConfigurationError(f"WECHAT_MERCHANTS 中的商户编号必须为整数: {part}")
    if not keys:
        raise ConfigurationError("WECHAT_MERCHANTS 未配置任何商户")
    return keys


def _parse_app_ids(name, raw):
    """解析 "1:wx...,2:wx..." 格式的应用编号与 appid 对应关系"""
    app_ids = {}
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        app_key, sep, app_id = part.partition(":")
        try:
            app_key = int(app_key)
        except ValueError:
            raise ConfigurationError(f"配置项 {name} 中的应用编号必须为整数: {part}")
        if not sep or not app_id.strip():
            raise ConfigurationError(f"配置项 {name} 格式错误，应为 应用编号:appid : {part}")
        if app_key in app_ids:
            raise ConfigurationError(f"配置项 {name} 中的应用编号重复: {app_key}")
        app_ids[app_key] = app_id.strip()
    return app_ids


def load_config(env: Mapping[str, str] | None = None) -> PayConfig:
    """从环境变量加载商户配置

    每个商户编号 n 需要配置:
        WECHAT_MCH_<n>_ID, WECHAT_MCH_<n>_SIGN_KEY_PATH, WECHAT_MCH_<n>_CERT_PATH
    可选:
        WECHAT_MCH_<n>_CERT_PASSWORD (默认为商户号), WECHAT_MCH_<n>_APP_ID,
        WECHAT_MCH_<n>_PUBLIC_KEY_PATH,
        WECHAT_MCH_<n>_APP_IDS (商户绑定的多个 appid，如 "2:wx2421b1c4370ec43b,3:wx...")
    """
    if env is None:
        load_dotenv()
        env = os.environ

    merchant_keys = _parse_merchant_keys(env.get("WECHAT_MERCHANTS", str(DEFAULT_MERCHANT)))
    merchants = {}
    missing_configs = []
    for key in merchant_keys:
        prefix = f"WECHAT_MCH_{key}_"
        required_configs = [
            (prefix + "ID", env.get(prefix + "ID")),
            (prefix + "SIGN_KEY_PATH", env.get(prefix + "SIGN_KEY_PATH")),
            (prefix + "CERT_PATH", env.get(prefix + "CERT_PATH")),
        ]
        missing = [name for name, value in required_configs if not value]
        if missing:
            missing_configs.extend(missing)
            continue
        mch_id = env[prefix + "ID"]
        merchants[key] = MerchantConfig(
            mch_id=mch_id,
            sign_key_path=env[prefix + "SIGN_KEY_PATH"],
            cert_path=env[prefix + "CERT_PATH"],
            # 微信支付 API 证书的默认密码为商户号
            cert_password=env.get(prefix + "CERT_PASSWORD") or mch_id,
            app_id=env.get(prefix + "APP_ID") or None,
            public_key_path=env.get(prefix + "PUBLIC_KEY_PATH") or None,
            app_ids=_parse_app_ids(prefix + "APP_IDS", env.get(prefix + "APP_IDS")),
        )

    if missing_configs:
        error_msg = f"缺少必要的配置项: {', '.join(missing_configs)}\n请确保在.env文件中配置了所有必要的环境变量"
        logger.error(error_msg)
        raise ConfigurationError(error_msg)

    logger.info(f"加载商户配置完成，商户编号: {sorted(merchants)}")
    return PayConfig(
        merchants=merchants,
        spbill_create_ip=env.get("WECHAT_SPBILL_CREATE_IP") or None,
        connect_timeout=_parse_timeout(env, "WECHAT_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT),
        read_timeout=_parse_timeout(env, "WECHAT_READ_TIMEOUT", DEFAULT_READ_TIMEOUT),
    )
