from pydantic import BaseModel


class Patient(BaseModel):
    """Normalized patient document.

    Store documents may omit any field; defaults here are the single place
    where missing values are filled in.
    """
    id: str
    name: str = ""
    age: int | None = None
    gender: str = ""
    allergies: list[str] = []
    medical_history: list[str] = []
    condition: str | None = None
    created_at: str = ""
    updated_at: str = ""


class PatientCreate(BaseModel):
    name: str
    age: int | None = None
    gender: str = ""
    allergies: list[str] = []
    medical_history: list[str] = []
    condition: str | None = None


class PatientUpdate(BaseModel):
    name: str | None = None
    age: int | None = None
    gender: str | None = None
    allergies: list[str] | None = None
    medical_history: list[str] | None = None
    condition: str | None = None
