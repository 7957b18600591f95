"""企业付款到银行卡"""

from ..crypto import encrypt_sensitive_fields
from .base import TransferBase
from .constants import BANK_TRANSFER_STATUS_MAP
from .models import BankCardTransfer, TransferResult


class TransferToBank(TransferBase):
    """企业付款到银行卡实现类

    1. 收款方银行卡号和真实姓名使用微信支付 RSA 公钥加密后再签名
    2. 付款到账时效为1-3日，接口返回成功仅表示付款请求已受理，
       最终结果以 QueryBankTransfer 查询结果为准
    """

    api_name = "transfer_to_bank"
    status_map = BANK_TRANSFER_STATUS_MAP

    def prepare_params(self, params, merchant):
        return encrypt_sensitive_fields(params, merchant.public_key)

    def transfer_to_bank_card(
        self,
        merchant_key: int,
        partner_trade_no: str,
        bank_no: str,
        true_name: str,
        bank_code: str,
        amount,
        desc: str,
    ) -> TransferResult:
        """
        企业付款到银行卡
        https://pay.weixin.qq.com/wiki/doc/api/tools/mch_pay.php?chapter=24_2

        Args:
            merchant_key (int): 商户编号
            partner_trade_no (str): 商户订单号，重试时必须使用原单号
            bank_no (str): 收款方银行卡号(明文，发送前加密)
            true_name (str): 收款方用户名(明文，发送前加密)
            bank_code (str): 收款方开户行编码，参考 BANK_CODES
            amount: 付款金额，单位为元
            desc (str): 付款说明，最多100字节

        Returns:
            TransferResult: 付款结果
        """
        return self.execute(
            BankCardTransfer(
                merchant_key=merchant_key,
                partner_trade_no=partner_trade_no,
                bank_no=bank_no,
                true_name=true_name,
                bank_code=bank_code,
                amount=amount,
                desc=desc,
            )
        )
