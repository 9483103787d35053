from origin_api.schemas.user import UserOut
from origin_api.schemas.auth import (
    RegisterRequest, CreateUserRequest, VerifyOTPRequest, ResendOTPRequest,
    LoginRequest, ForgotPasswordRequest, ResetPasswordRequest,
    MessageResponse, RegisterResponse, VerifyOTPResponse, LoginResponse, CreateUserResponse,
)
from origin_api.schemas.shop import (
    ProductCreateRequest, ProductUpdateRequest, StockAdjustRequest, PriceAdjustRequest,
    ProductOut, SellProductRequest, ReverseSaleRequest, SaleOut, SaleHistoryOut,
    SellProductResponse, ReverseSaleResponse, ProductDeleteResponse,
)
