"""商户凭证管理

启动时一次性加载所有商户的签名密钥、API证书和微信支付公钥，
之后只读，下游只拿到内存中的凭证，不会接触到文件路径。
"""

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from Crypto.PublicKey import RSA
from cryptography.hazmat.primitives.serialization import pkcs12
from loguru import logger

from .config import DEFAULT_MERCHANT, PayConfig
from .exceptions import ConfigurationError, UnknownMerchantError

__all__ = ["DEFAULT_MERCHANT", "MerchantContext", "CredentialStore"]


@dataclass(frozen=True)
class MerchantContext:
    """单个商户的凭证"""

    merchant_key: int
    mch_id: str
    sign_key: str = field(repr=False)
    # PKCS#12 格式的商户API证书(apiclient_cert.p12)
    client_cert: bytes = field(repr=False)
    cert_password: str = field(repr=False)
    # 企业付款到银行卡时用于加密卡号和姓名的 RSA 公钥(PEM)
    public_key: bytes | None = field(default=None, repr=False)
    # 转账到零钱时默认使用的 mch_appid
    app_id: str | None = None
    spbill_create_ip: str | None = None
    # 商户绑定的其他 appid，按应用编号区分
    app_ids: Mapping[int, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "app_ids", MappingProxyType(dict(self.app_ids)))

    def resolve_app_id(self, app_key=None) -> str:
        """获取 appid，app_key 为 None 时使用默认 appid"""
        if app_key is None:
            if not self.app_id:
                raise ConfigurationError(f"商户 {self.merchant_key} 未配置 appid，无法调用该接口")
            return self.app_id
        try:
            return self.app_ids[app_key]
        except (KeyError, TypeError):
            raise ConfigurationError(f"商户 {self.merchant_key} 未配置应用编号为 {app_key!r} 的 appid") from None


def _validate_merchant(merchant: MerchantContext):
    required_configs = [
        ("mch_id", merchant.mch_id),
        ("sign_key", merchant.sign_key),
        ("client_cert", merchant.client_cert),
        ("cert_password", merchant.cert_password),
    ]
    missing_configs = [name for name, value in required_configs if not value]
    if missing_configs:
        raise ConfigurationError(
            f"商户 {merchant.merchant_key} 缺少必要的凭证: {', '.join(missing_configs)}"
        )

    try:
        pkcs12.load_key_and_certificates(merchant.client_cert, merchant.cert_password.encode("utf-8"))
    except ValueError as e:
        raise ConfigurationError(f"商户 {merchant.merchant_key} 的API证书无法加载: {str(e)}") from e

    if merchant.public_key is not None:
        try:
            RSA.import_key(merchant.public_key)
        except (ValueError, IndexError, TypeError) as e:
            raise ConfigurationError(f"商户 {merchant.merchant_key} 的微信支付公钥无法加载: {str(e)}") from e


class CredentialStore:
    """按商户编号解析商户凭证，初始化后只读，可被多个线程并发读取"""

    def __init__(self, merchants):
        if not merchants:
            raise ConfigurationError("未配置任何商户")

        contexts = {}
        for merchant in merchants:
            if merchant.merchant_key in contexts:
                raise ConfigurationError(f"商户编号重复: {merchant.merchant_key}")
            _validate_merchant(merchant)
            contexts[merchant.merchant_key] = merchant
        self._merchants: Mapping[int, MerchantContext] = MappingProxyType(contexts)
        logger.info(f"成功加载商户凭证，商户编号: {sorted(contexts)}")

    @classmethod
    def from_config(cls, config: PayConfig) -> "CredentialStore":
        """读取配置中的证书和密钥文件，构造凭证仓库"""
        merchants = []
        for key, merchant_config in config.merchants.items():
            try:
                sign_key = Path(merchant_config.sign_key_path).read_text(encoding="utf-8").strip()
                client_cert = Path(merchant_config.cert_path).read_bytes()
                public_key = None
                if merchant_config.public_key_path:
                    public_key = Path(merchant_config.public_key_path).read_bytes()
            except OSError as e:
                error_msg = f"加载商户 {key} 的凭证文件失败: {str(e)}"
                logger.error(error_msg)
                raise ConfigurationError(error_msg) from e

            merchants.append(
                MerchantContext(
                    merchant_key=key,
                    mch_id=merchant_config.mch_id,
                    sign_key=sign_key,
                    client_cert=client_cert,
                    cert_password=merchant_config.cert_password,
                    public_key=public_key,
                    app_id=merchant_config.app_id,
                    app_ids=merchant_config.app_ids,
                    spbill_create_ip=config.spbill_create_ip,
                )
            )
        return cls(merchants)

    @property
    def merchant_keys(self):
        return sorted(self._merchants)

    def resolve(self, merchant_key: int) -> MerchantContext:
        """获取商户凭证，未配置时抛出 UnknownMerchantError"""
        try:
            return self._merchants[merchant_key]
        except (KeyError, TypeError):
            raise UnknownMerchantError(merchant_key) from None
