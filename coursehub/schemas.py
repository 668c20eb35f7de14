from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .models import ContentType, DiscountType, Role


# --- Users & auth ---

class UserCreate(BaseModel):
    email: EmailStr
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Role = Role.STUDENT


class AdminUserCreate(UserCreate):
    role: Role


class LoginRequest(BaseModel):
    # email or username
    email: str
    password: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: str
    role: Role
    is_verified: bool
    created_at: Optional[datetime] = None


class LoginResponse(BaseModel):
    message: str
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class EmailRequest(BaseModel):
    email: EmailStr


class PasswordReset(BaseModel):
    token: str
    new_password: str


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    username: Optional[str] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class RoleUpdate(BaseModel):
    role: Role


# --- Catalog ---

class CategoryIn(BaseModel):
    name: str = Field(min_length=1)


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class CourseCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str
    price: float = Field(ge=0)
    category_id: int
    thumbnail_url: Optional[str] = None


class AdminCourseCreate(CourseCreate):
    teacher_id: int


class CourseUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    category_id: Optional[int] = None
    thumbnail_url: Optional[str] = None


class AdminCourseUpdate(CourseUpdate):
    teacher_id: Optional[int] = None


class ModuleCreate(BaseModel):
    course_id: int
    title: str = Field(min_length=1)
    order: Optional[int] = None


class ContentCreate(BaseModel):
    module_id: int
    title: str = Field(min_length=1)
    content_type: ContentType
    order: Optional[int] = None
    video_url: Optional[str] = None
    duration_in_seconds: Optional[int] = None
    document_url: Optional[str] = None
    file_type: Optional[str] = None
    time_limit_in_minutes: Optional[int] = None


# --- Enrollment ---

class CheckoutRequest(BaseModel):
    promotion_code: Optional[str] = None


class CheckoutResponse(BaseModel):
    url: str
    enrollment_id: int
    payment_id: int
    free: bool


# --- Quiz ---

class SubmittedAnswer(BaseModel):
    question_id: int
    answer_option_id: int


class QuizSubmission(BaseModel):
    answers: List[SubmittedAnswer]


class QuestionCreate(BaseModel):
    content_id: int
    question_text: str = Field(min_length=1)


class OptionCreate(BaseModel):
    question_id: int
    option_text: str = Field(min_length=1)
    is_correct: bool


# --- Reviews & comments ---

class ReviewIn(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None


class CommentIn(BaseModel):
    text: str
    parent_id: Optional[int] = None


# --- Promotions ---

def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # stored columns are naive UTC
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class PromotionCreate(BaseModel):
    code: str = Field(min_length=1)
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: float
    min_purchase_amount: Optional[float] = None
    max_discount_amount: Optional[float] = None
    usage_limit: Optional[int] = None
    start_date: datetime
    end_date: datetime
    is_active: bool = True

    @field_validator("start_date", "end_date")
    @classmethod
    def naive_utc(cls, value):
        return _to_naive_utc(value)


class PromotionUpdate(BaseModel):
    code: Optional[str] = None
    description: Optional[str] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[float] = None
    min_purchase_amount: Optional[float] = None
    max_discount_amount: Optional[float] = None
    usage_limit: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def naive_utc(cls, value):
        return _to_naive_utc(value)


class PromotionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: float
    min_purchase_amount: Optional[float] = None
    max_discount_amount: Optional[float] = None
    usage_limit: Optional[int] = None
    used_count: int
    start_date: datetime
    end_date: datetime
    is_active: bool


class PromotionValidate(BaseModel):
    code: str = Field(min_length=1)
    price: float = Field(ge=0)


class SystemStats(BaseModel):
    total_users: int
    total_courses: int
    total_enrollments: int
    total_categories: int
    users_by_role: dict
    recent_users: List[UserOut]
