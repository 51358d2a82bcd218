from datetime import date, datetime
from typing import Optional, List, Literal
from pydantic import BaseModel, Field


# --- Auth ---

class RegisterIn(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=6, max_length=72)
    phone: Optional[str] = Field(None, max_length=32)
    address: Optional[str] = Field(None, max_length=512)


class RegisterOut(BaseModel):
    user_id: str
    detail: str
    dev_otp: Optional[str] = None


class VerifyOtpIn(BaseModel):
    user_id: str
    otp: str


class ResendOtpIn(BaseModel):
    email: str


class LoginIn(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    role: str
    is_verified: bool
    created_at: datetime


class TokenOut(BaseModel):
    access_token: str
    user: UserOut


class ProfileUpdateIn(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=128)
    phone: Optional[str] = Field(None, max_length=32)
    address: Optional[str] = Field(None, max_length=512)


class UserStatusIn(BaseModel):
    is_verified: bool


# --- Vehicles ---

class CoordinatesIn(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class LocationIn(BaseModel):
    address: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    coordinates: Optional[CoordinatesIn] = None


class VehicleDocumentsIn(BaseModel):
    rc_book: Optional[str] = None
    registration_certificate: Optional[str] = None
    insurance_certificate: Optional[str] = None
    pollution_certificate: Optional[str] = None


class InsuranceDetailsIn(BaseModel):
    provider: Optional[str] = None
    policy_number: Optional[str] = None
    expiry_date: Optional[date] = None


class VehicleCreateIn(BaseModel):
    name: str
    brand: str
    model: str
    year: int = Field(..., ge=1900)
    type: Literal["sedan", "suv", "hatchback", "luxury", "economy"]
    seats: int = Field(..., ge=1)
    transmission: Literal["manual", "automatic"]
    fuel_type: Literal["petrol", "diesel", "electric", "hybrid"]
    price_per_day: float = Field(..., ge=0)
    price_per_km: float = Field(..., ge=0)
    registration_number: str = Field(..., min_length=1, max_length=32)
    city: str
    district: str
    state: str
    address: Optional[str] = None
    coordinates: Optional[CoordinatesIn] = None
    images: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    documents: VehicleDocumentsIn = Field(default_factory=VehicleDocumentsIn)
    insurance_details: Optional[InsuranceDetailsIn] = None
    commission_rate: Optional[float] = Field(None, ge=0)


class VehicleUpdateIn(BaseModel):
    name: Optional[str] = None
    seats: Optional[int] = Field(None, ge=1)
    price_per_day: Optional[float] = Field(None, ge=0)
    price_per_km: Optional[float] = Field(None, ge=0)
    city: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    address: Optional[str] = None
    images: Optional[List[str]] = None
    features: Optional[List[str]] = None
    documents: Optional[VehicleDocumentsIn] = None
    availability: Optional[bool] = None
    commission_rate: Optional[float] = Field(None, ge=0)


class VehicleReviewIn(BaseModel):
    status: Literal["approved", "rejected"]
    rejection_reason: Optional[str] = Field(None, max_length=512)


class OwnerSummaryOut(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None


class VehicleOut(BaseModel):
    id: str
    owner: Optional[OwnerSummaryOut] = None
    name: str
    brand: str
    model: str
    year: int
    type: str
    seats: int
    transmission: str
    fuel_type: str
    price_per_day: float
    price_per_km: float
    registration_number: str
    images: List[str]
    features: List[str]
    city: str
    district: str
    state: str
    address: Optional[str] = None
    status: str
    rejection_reason: Optional[str] = None
    availability: bool
    commission_rate: float
    total_earnings: float
    total_bookings: int
    documents: dict
    created_at: datetime


class VehiclesListOut(BaseModel):
    vehicles: List[VehicleOut]
    total: int


# --- Bookings ---

class BookingCreateIn(BaseModel):
    vehicle_id: str
    start_date: date
    end_date: date
    pickup_location: Optional[LocationIn] = None
    dropoff_location: Optional[LocationIn] = None
    payment_method: Literal["cash", "online"]
    pricing_type: Literal["perDay", "perKm"] = "perDay"
    estimated_distance: Optional[float] = None
    driver_required: bool = False
    special_requests: Optional[str] = Field(None, max_length=2000)


class QuoteOut(BaseModel):
    total_days: int
    total_distance: float
    day_charges: float
    distance_charges: float
    driver_charge: float
    driver_charge_included: bool
    total_amount: float


class BookingVehicleOut(BaseModel):
    id: str
    name: str
    brand: str
    model: str
    registration_number: str


class BookingRenterOut(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None


class BookingOut(BaseModel):
    id: str
    booking_code: str
    invoice_number: str
    user: Optional[BookingRenterOut] = None
    vehicle: Optional[BookingVehicleOut] = None
    start_date: date
    end_date: date
    pickup_location: dict
    dropoff_location: dict
    total_days: int
    total_distance: float
    total_amount: float
    driver_charge: float
    payment_method: str
    payment_status: str
    booking_status: str
    pricing_type: str
    estimated_distance: float
    driver_required: bool
    special_requests: Optional[str] = None
    commission_generated: bool
    commission_amount: float
    created_at: datetime


class BookingsListOut(BaseModel):
    bookings: List[BookingOut]
    total: Optional[int] = None
    total_pages: Optional[int] = None
    current_page: Optional[int] = None


class BookingStatusIn(BaseModel):
    status: Literal["pending", "confirmed", "ongoing", "completed", "cancelled"]


# --- Commissions ---

class CommissionOut(BaseModel):
    id: str
    vehicle_owner_id: str
    booking_id: str
    vehicle_id: str
    invoice_number: Optional[str] = None
    commission_amount: float
    status: str
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class CommissionPayIn(BaseModel):
    payment_method: Literal["bank_transfer", "upi", "cash"] = "bank_transfer"
    transaction_id: Optional[str] = Field(None, max_length=128)
    notes: Optional[str] = Field(None, max_length=512)


class EarningsOut(BaseModel):
    commissions: List[CommissionOut]
    total_earnings: float
    pending_earnings: float
    total_commissions: int


class CommissionsListOut(BaseModel):
    commissions: List[CommissionOut]
    total: int
    total_pages: int
    current_page: int
    summary: List[dict]
