# Pydantic schemas
from app.schemas.auth import (
    UserRegister,
    VerifyOTPRequest,
    ResendOTPRequest,
    UserLogin,
    RefreshTokenRequest,
    TokenPair,
    UserSummary,
    UserResponse,
    LoginResponse,
    RegisterResponse,
)
from app.schemas.flat import FlatCreate, FlatUpdate, FlatResponse
from app.schemas.notice import NoticeCreate, NoticeUpdate, NoticeResponse
from app.schemas.complaint import ComplaintUpdate, ComplaintResponse
from app.schemas.maintenance import (
    MaintenanceCreate,
    MaintenanceBulkCreate,
    MaintenanceUpdate,
    MaintenanceResponse,
    VerifyPaymentRequest,
    OrderResponse,
    PaymentSummary,
)
from app.schemas.memory_lane import CommentCreate, CommentResponse, MemoryPostResponse
from app.schemas.dashboard import DashboardStats
