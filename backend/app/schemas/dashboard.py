from pydantic import BaseModel


class DashboardStats(BaseModel):
    total_flats: int
    occupied_flats: int
    occupancy_rate: float  # Percentage, one decimal place
    pending_complaints: int
    unpaid_maintenance: int
    active_notices: int
