from datetime import date
from typing import Literal

from schemas.physique import CamelModel


class AgeVerificationRequest(CamelModel):
    date_of_birth: date
    confirms_over18: Literal[True]


class AgeVerificationResponse(CamelModel):
    verified: bool
    age: int
