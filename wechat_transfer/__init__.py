"""微信支付企业付款客户端"""

from .config import DEFAULT_MERCHANT, PayConfig, load_config
from .credentials import CredentialStore, MerchantContext
from .exceptions import (
    ConfigurationError,
    EncryptionError,
    FieldTooLongError,
    ProtocolError,
    TransportError,
    UnknownMerchantError,
    ValidationError,
    WeChatTransferError,
)
from .transfer import (
    BusinessFailure,
    CreateTransfer,
    ProtocolFailure,
    QueryBankTransfer,
    QueryTransfer,
    Success,
    TransferResult,
    TransferToBank,
    TransportFailure,
)
from .transport import SecureTransport

__version__ = "0.1.0"
