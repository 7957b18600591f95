"""敏感字段加密

企业付款到银行卡时，收款方银行卡号和真实姓名需使用微信支付 RSA 公钥加密，
算法为 RSA/ECB/OAEPWITHSHA-1ANDMGF1PADDING，加密结果 Base64 编码后参与签名。
"""

from base64 import b64encode
from typing import Mapping

from Crypto.Cipher import PKCS1_OAEP
from Crypto.Hash import SHA1
from Crypto.PublicKey import RSA
from loguru import logger

from .exceptions import EncryptionError

# 需要加密的字段
SENSITIVE_FIELDS = ("enc_bank_no", "enc_true_name")


def load_public_key(public_key_pem):
    """加载微信支付 RSA 公钥，支持 PKCS#1 和 X.509 两种 PEM 格式"""
    if not public_key_pem:
        raise EncryptionError("缺少微信支付公钥，无法加密敏感信息")
    try:
        return RSA.import_key(public_key_pem)
    except (ValueError, IndexError, TypeError) as e:
        raise EncryptionError(f"加载微信支付公钥失败: {str(e)}") from e


def encrypt(public_key, plaintext: str) -> str:
    """使用公钥加密字符串，采用 OAEP padding 方式"""
    cipher = PKCS1_OAEP.new(public_key, hashAlgo=SHA1)
    try:
        encrypted_data = cipher.encrypt(plaintext.encode("utf-8"))
    except ValueError as e:
        raise EncryptionError(f"加密敏感数据失败: {str(e)}") from e
    return b64encode(encrypted_data).decode("utf-8")


def encrypt_sensitive_fields(fields: Mapping[str, str], public_key_pem) -> dict[str, str]:
    """加密银行卡号和真实姓名，返回新的参数集

    任何一个字段缺失或公钥异常都会抛出 EncryptionError，此时请求不会被签名
    """
    missing_fields = [name for name in SENSITIVE_FIELDS if not fields.get(name)]
    if missing_fields:
        error_msg = f"缺少需要加密的字段: {', '.join(missing_fields)}"
        logger.error(error_msg)
        raise EncryptionError(error_msg)

    public_key = load_public_key(public_key_pem)
    encrypted = dict(fields)
    for name in SENSITIVE_FIELDS:
        encrypted[name] = encrypt(public_key, fields[name])
    logger.debug(f"敏感字段加密完成: {', '.join(SENSITIVE_FIELDS)}")
    return encrypted
