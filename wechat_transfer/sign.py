"""微信支付 v2 接口签名

签名规则参考 https://pay.weixin.qq.com/wiki/doc/api/tools/mch_pay.php?chapter=4_3
    1. 参数名按 ASCII 码从小到大排序，值为空的参数不参与签名
    2. 使用 key1=value1&key2=value2 的格式拼接成字符串
    3. 末尾拼接 &key=商户API密钥，MD5 后转为大写
"""

import hashlib
import hmac
import uuid
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from .transport import dict_to_xml

SIGN_FIELD = "sign"


def generate_nonce() -> str:
    """生成随机字符串，每个请求单独生成，不可复用"""
    return uuid.uuid4().hex


def canonicalize(fields: Mapping[str, str]) -> dict[str, str]:
    """按参数名排序，去掉值为空的参数和签名字段"""
    return {
        key: fields[key]
        for key in sorted(fields)
        if key != SIGN_FIELD and fields[key] is not None and fields[key] != ""
    }


def sign(fields: Mapping[str, str], sign_key: str) -> str:
    """计算签名，签名字段本身不参与计算"""
    canonical = canonicalize(fields)
    string_a = "&".join(f"{key}={value}" for key, value in canonical.items())
    string_sign_temp = f"{string_a}&key={sign_key}"
    return hashlib.md5(string_sign_temp.encode("utf-8")).hexdigest().upper()


def verify_sign(fields: Mapping[str, str], sign_key: str) -> bool:
    """验证带签名的参数集"""
    signature = fields.get(SIGN_FIELD)
    if not signature:
        return False
    return hmac.compare_digest(signature.upper(), sign(fields, sign_key))


@dataclass(frozen=True)
class SignedEnvelope:
    """签名后的请求报文，签名之后不允许再修改任何字段"""

    fields: Mapping[str, str]
    sign: str

    def as_dict(self) -> dict[str, str]:
        return {**self.fields, SIGN_FIELD: self.sign}

    def to_xml(self) -> str:
        return dict_to_xml(self.as_dict())


def sign_envelope(fields: Mapping[str, str], sign_key: str) -> SignedEnvelope:
    """参数排序后签名，签名追加在所有参数之后"""
    canonical = canonicalize(fields)
    return SignedEnvelope(fields=MappingProxyType(canonical), sign=sign(canonical, sign_key))
