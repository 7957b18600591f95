"""企业付款基础类"""

from typing import Mapping

from loguru import logger

from ..exceptions import ProtocolError, TransportError
from ..sign import SIGN_FIELD, sign_envelope
from ..transport import SecureTransport
from .constants import (
    API_CONFIGS,
    FINAL_STATES,
    PROCESSING_STATES,
    RESULT_FAIL,
    RESULT_SUCCESS,
    RETRIABLE_BIZ_CODES,
    RETURN_SUCCESS,
)
from .models import BusinessFailure, ProtocolFailure, Success, TransferResult, TransportFailure
from .params import build_params


def interpret_response(fields: Mapping[str, str]) -> TransferResult:
    """解析微信支付响应

    1. return_code 不为 SUCCESS: 通信失败，返回 ProtocolFailure
    2. result_code 为 FAIL: 业务失败，返回 BusinessFailure
    3. 否则返回 Success
    """
    return_code = fields.get("return_code")
    if return_code != RETURN_SUCCESS:
        if not return_code:
            reason = "响应报文缺少 return_code"
        else:
            reason = fields.get("return_msg") or f"return_code={return_code}"
        return ProtocolFailure(reason=reason, data=dict(fields))

    data = {key: value for key, value in fields.items() if key != SIGN_FIELD}
    match fields.get("result_code"):
        case code if code == RESULT_SUCCESS:
            return Success(data=data)
        case code if code == RESULT_FAIL:
            err_code = fields.get("err_code") or "UNKNOWN"
            return BusinessFailure(
                code=err_code,
                message=fields.get("err_code_des") or fields.get("return_msg") or "",
                retryable=err_code in RETRIABLE_BIZ_CODES,
                data=data,
            )
        case None | "":
            return ProtocolFailure(reason="响应报文缺少 result_code", data=data)
        case code:
            return ProtocolFailure(reason=f"未知的 result_code: {code}", data=data)


class TransferBase:
    """企业付款基础类

    执行流程: 获取商户凭证 -> 构造参数 -> (加密敏感字段) -> 签名 -> 发送 -> 解析响应

    参数错误、配置错误、加密失败会直接抛出异常，此时请求不会被发送；
    网络、报文、业务错误均以 TransferResult 返回，不会自动重试。
    """

    # API_CONFIGS 中的接口名称
    api_name: str = ""
    # 查询接口返回的 status 描述
    status_map: Mapping[str, str] = {}

    def __init__(self, credential_store, transport=None):
        self.credential_store = credential_store
        self.transport = transport or SecureTransport()
        self.api_config = API_CONFIGS[self.api_name]

    def prepare_params(self, params, merchant):
        """签名前对参数的额外处理，默认不处理"""
        return params

    def execute(self, request) -> TransferResult:
        merchant = self.credential_store.resolve(request.merchant_key)
        params = build_params(request, merchant)
        params = self.prepare_params(params, merchant)
        envelope = sign_envelope(params, merchant.sign_key)

        partner_trade_no = request.partner_trade_no
        logger.info(
            f"开始{self.api_config['desc']} - 商户编号: {merchant.merchant_key}, 商户单号: {partner_trade_no}"
        )
        try:
            fields = self.transport.send(envelope, merchant, self.api_config["url"])
        except TransportError as e:
            logger.warning(f"{self.api_config['desc']}网络异常，商户单号: {partner_trade_no}，错误: {str(e)}")
            return TransportFailure(cause=str(e))
        except ProtocolError as e:
            logger.error(f"{self.api_config['desc']}响应报文异常，商户单号: {partner_trade_no}，错误: {e.reason}")
            return ProtocolFailure(reason=e.reason, raw=e.raw)

        result = interpret_response(fields)
        self.handle_transfer_result(result, partner_trade_no)
        return result

    def handle_transfer_result(self, result: TransferResult, partner_trade_no):
        """记录处理结果"""
        desc = self.api_config["desc"]
        match result:
            case Success(data=data):
                status = data.get("status")
                if not status:
                    logger.info(f"{desc}成功，商户单号: {partner_trade_no}，微信单号: {result.payment_no}")
                    return
                status_msg = self.status_map.get(status, "未知状态")
                if status in PROCESSING_STATES or status == "SUCCESS":
                    logger.info(f"{desc}: {status_msg}，商户单号: {partner_trade_no}")
                elif status in FINAL_STATES:
                    logger.warning(
                        f"{desc}: {status_msg}，商户单号: {partner_trade_no}，失败原因: {data.get('reason')}"
                    )
                else:
                    logger.error(f"{desc}: 未知状态 {status}，商户单号: {partner_trade_no}")

            case BusinessFailure(retryable=True):
                logger.warning(
                    f"{desc}业务错误(可使用原单号重试)，错误码: {result.code}，商户单号: {partner_trade_no}"
                )

            case BusinessFailure():
                logger.error(
                    f"{desc}业务错误(不可重试)，错误码: {result.code}，{result.message}，商户单号: {partner_trade_no}"
                )

            case ProtocolFailure():
                logger.error(f"{desc}通信失败，商户单号: {partner_trade_no}，原因: {result.reason}")
