"""双向 TLS 请求发送

转账类接口需要携带商户API证书，微信支付同时通过证书和签名校验请求来源。
请求和响应均为扁平的 XML 报文:
    <xml><mch_id>1900000109</mch_id>...<sign>...</sign></xml>
"""

import ssl
import tempfile
from functools import lru_cache
from typing import Mapping
from xml.etree import ElementTree

import requests
from cryptography.hazmat.primitives.serialization import (
    BestAvailableEncryption,
    Encoding,
    PrivateFormat,
    pkcs12,
)
from loguru import logger
from requests import certs
from requests.adapters import HTTPAdapter

from .config import DEFAULT_CONNECT_TIMEOUT, DEFAULT_READ_TIMEOUT
from .exceptions import ConfigurationError, ProtocolError, TransportError

# 诊断信息中保留的响应报文长度
RAW_PREVIEW_LENGTH = 2000


def dict_to_xml(fields: Mapping[str, str]) -> str:
    """参数集转为微信支付 XML 报文，保持参数顺序"""
    root = ElementTree.Element("xml")
    for key, value in fields.items():
        ElementTree.SubElement(root, key).text = value
    return ElementTree.tostring(root, encoding="unicode")


def _preview(content):
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    return content[:RAW_PREVIEW_LENGTH]


def xml_to_dict(content) -> dict[str, str]:
    """解析微信支付响应报文，报文必须是以 <xml> 为根节点的扁平结构"""
    if not content or not content.strip():
        raise ProtocolError("响应报文为空")

    try:
        root = ElementTree.fromstring(content)
    except ElementTree.ParseError as e:
        raise ProtocolError(f"响应报文不是合法的XML: {str(e)}", raw=_preview(content)) from e

    if root.tag != "xml":
        raise ProtocolError(f"响应报文根节点错误: {root.tag}", raw=_preview(content))

    fields = {}
    for child in root:
        if len(child):
            raise ProtocolError(f"响应报文包含嵌套节点: {child.tag}", raw=_preview(content))
        if child.tag in fields:
            raise ProtocolError(f"响应报文包含重复字段: {child.tag}", raw=_preview(content))
        fields[child.tag] = child.text or ""
    return fields


@lru_cache(maxsize=32)
def build_ssl_context(client_cert: bytes, cert_password: str) -> ssl.SSLContext:
    """从 PKCS#12 证书构造携带客户端证书的 SSLContext，同一证书只构造一次"""
    password = cert_password.encode("utf-8")
    try:
        private_key, certificate, additional_certs = pkcs12.load_key_and_certificates(client_cert, password)
    except ValueError as e:
        raise ConfigurationError(f"加载商户API证书失败: {str(e)}") from e
    if private_key is None or certificate is None:
        raise ConfigurationError("商户API证书中缺少私钥或证书")

    pem = private_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, BestAvailableEncryption(password))
    pem += certificate.public_bytes(Encoding.PEM)
    for extra in additional_certs:
        pem += extra.public_bytes(Encoding.PEM)

    context = ssl.create_default_context(cafile=certs.where())
    # load_cert_chain 只接受文件路径，临时文件中的私钥保持加密，加载后立即删除
    with tempfile.NamedTemporaryFile(suffix=".pem") as pem_file:
        pem_file.write(pem)
        pem_file.flush()
        try:
            context.load_cert_chain(pem_file.name, password=password)
        except ssl.SSLError as e:
            raise ConfigurationError(f"加载商户API证书失败: {str(e)}") from e
    return context


class ClientCertAdapter(HTTPAdapter):
    """使用指定 SSLContext 建立连接的 HTTPAdapter"""

    def __init__(self, ssl_context, **kwargs):
        self._ssl_context = ssl_context
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        kwargs["ssl_context"] = self._ssl_context
        return super().init_poolmanager(*args, **kwargs)

    def proxy_manager_for(self, *args, **kwargs):
        kwargs["ssl_context"] = self._ssl_context
        return super().proxy_manager_for(*args, **kwargs)


class SecureTransport:
    """发送签名后的报文并解析响应

    - 网络/TLS/超时/HTTP状态码异常: 抛出 TransportError
    - 响应报文无法解析: 抛出 ProtocolError
    """

    def __init__(self, timeout=(DEFAULT_CONNECT_TIMEOUT, DEFAULT_READ_TIMEOUT)):
        self.timeout = timeout

    def send(self, envelope, merchant, url: str) -> dict[str, str]:
        body = envelope.to_xml()
        ssl_context = build_ssl_context(merchant.client_cert, merchant.cert_password)

        logger.debug(f"发送请求 - URL: {url}, 商户号: {merchant.mch_id}")
        try:
            with requests.Session() as session:
                session.mount("https://", ClientCertAdapter(ssl_context))
                response = session.post(
                    url,
                    data=body.encode("utf-8"),
                    headers={"Content-Type": "text/xml; charset=utf-8"},
                    timeout=self.timeout,
                )
        except requests.Timeout as e:
            logger.warning(f"请求超时，转账结果未知，请通过查询接口确认 - URL: {url}")
            raise TransportError(f"请求超时: {str(e)}") from e
        except requests.RequestException as e:
            logger.warning(f"请求失败 - URL: {url}, 错误: {str(e)}")
            raise TransportError(f"请求失败: {str(e)}") from e

        logger.info(f"响应状态码: {response.status_code}, URL: {url}")
        if not 200 <= response.status_code < 300:
            raise TransportError(f"HTTP状态码异常: {response.status_code}")

        return xml_to_dict(response.content)
