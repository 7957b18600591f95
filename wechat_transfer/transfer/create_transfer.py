"""企业付款到零钱"""

from .base import TransferBase
from .constants import TRANSFER_STATUS_MAP
from .models import PeerTransfer, TransferResult


class CreateTransfer(TransferBase):
    """企业付款到零钱实现类"""

    api_name = "create_transfer"
    status_map = TRANSFER_STATUS_MAP

    def create_transfer_order(
        self,
        merchant_key: int,
        partner_trade_no: str,
        openid: str,
        amount,
        desc: str,
        re_user_name: str = None,
        device_info: str = None,
        app_key: int = None,
    ) -> TransferResult:
        """
        企业付款到零钱
        https://pay.weixin.qq.com/wiki/doc/api/tools/mch_pay.php?chapter=14_2

        重要说明：
            1. 商户订单号(partner_trade_no)由调用方生成，同一笔付款重试时必须使用原商户订单号
            2. 返回 BusinessFailure 且 retryable 为 True(如 SYSTEMERROR)时，付款结果未明确，
               请使用原商户订单号重试或先调用查询接口，不要更换单号，否则会有重复付款的资金风险
            3. 返回 TransportFailure 或 ProtocolFailure 时，请先通过 QueryTransfer 查询原单结果
            4. 传入 re_user_name 时强校验收款用户真实姓名，未实名用户无法收款

        Args:
            merchant_key (int): 商户编号，使用默认商户时传入 DEFAULT_MERCHANT
            partner_trade_no (str): 商户订单号，只能由数字、大小写字母组成，最多32位
            openid (str): 收款用户在 mch_appid 下的 openid
            amount: 付款金额，单位为元，超出分的部分舍去
            desc (str): 付款备注，最多100字节，超长时抛出 FieldTooLongError
            re_user_name (str, optional): 收款用户真实姓名
            device_info (str, optional): 终端设备号
            app_key (int, optional): 应用编号，使用商户绑定的其他 appid 付款时传入

        Returns:
            TransferResult: 付款结果
        """
        return self.execute(
            PeerTransfer(
                merchant_key=merchant_key,
                partner_trade_no=partner_trade_no,
                openid=openid,
                amount=amount,
                desc=desc,
                re_user_name=re_user_name,
                device_info=device_info,
                app_key=app_key,
            )
        )
