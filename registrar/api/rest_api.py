"""
REST API implementation for the Registrar engine using FastAPI.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.entities import OperationResult
from ..core.enums import FailureKind, Role, SectionStatus
from ..core.exceptions import PersistenceError
from ..core.schedule import conflicts, parse_schedule
from ..services import AdministrationService, GradingService, RegistrationService


logger = logging.getLogger(__name__)

FAILURE_STATUS = {
    FailureKind.ACCESS_DENIED: status.HTTP_403_FORBIDDEN,
    FailureKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureKind.POLICY_DENIAL: status.HTTP_409_CONFLICT,
    FailureKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    FailureKind.CONTENTION: status.HTTP_423_LOCKED,
}


# Pydantic models for API
class RegistrationRequest(BaseModel):
    student_id: int = Field(..., ge=1)
    section_id: int = Field(..., ge=1)


class ScoresRequest(BaseModel):
    quiz: Optional[float] = Field(None, allow_inf_nan=False)
    midterm: Optional[float] = Field(None, allow_inf_nan=False)
    final: Optional[float] = Field(None, allow_inf_nan=False)


class CourseCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    title: str = Field(..., min_length=1, max_length=200)
    credits: int


class CourseUpdate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    credits: int


class SectionCreate(BaseModel):
    course_id: int = Field(..., ge=1)
    section_name: str = Field(..., min_length=1, max_length=10)
    schedule_text: str = Field("", max_length=100)
    capacity: int
    semester: str = Field(..., min_length=1, max_length=20)
    year: int = Field(..., ge=2000, le=2100)
    instructor_id: Optional[int] = None
    drop_deadline: Optional[datetime] = None


class SectionStatusUpdate(BaseModel):
    status: str = Field(..., pattern=r'^(OPEN|CLOSED)$')


class InstructorAssignment(BaseModel):
    instructor_id: int = Field(..., ge=1)


class MaintenanceUpdate(BaseModel):
    enabled: bool


class ConflictCheckRequest(BaseModel):
    schedule_a: str
    schedule_b: str


class ConflictCheckResponse(BaseModel):
    conflict: bool
    slot_a: Optional[str] = None
    slot_b: Optional[str] = None


class OperationResponse(BaseModel):
    success: bool
    message: str
    data: Dict[str, Any] = {}


@dataclass
class Caller:
    """Identity taken from the request headers."""
    role: Role
    user_id: int


def get_caller(x_role: str = Header(...), x_user_id: int = Header(...)) -> Caller:
    try:
        role = Role(x_role.lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown role: {x_role}")
    return Caller(role=role, user_id=x_user_id)


def to_response(result: OperationResult) -> OperationResponse:
    """Turn a failed result into an HTTP error, a successful one into a body."""
    if not result.success:
        raise HTTPException(status_code=FAILURE_STATUS[result.failure], detail=result.message)
    return OperationResponse(success=True, message=result.message, data=result.data)


class RegistrarRestAPI:
    """REST API implementation for the Registrar engine."""

    def __init__(self, registration_service: RegistrationService,
                 grading_service: GradingService,
                 administration_service: AdministrationService):
        self._registration_service = registration_service
        self._grading_service = grading_service
        self._administration_service = administration_service

        # Create FastAPI app
        self.app = FastAPI(
            title="Registrar API",
            description="Course registration and grading rules engine",
            version="1.0.0",
            docs_url="/docs",
            redoc_url="/redoc"
        )

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self.app.add_exception_handler(PersistenceError, self._persistence_error_handler)
        self._setup_routes()

    @staticmethod
    async def _persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=500, content={"detail": "Internal storage error"})

    @staticmethod
    def _require_self_or_admin(caller: Caller, student_id: int) -> None:
        if caller.role is Role.ADMIN:
            return
        if caller.role is Role.STUDENT and caller.user_id == student_id:
            return
        raise HTTPException(status_code=403, detail="Access denied")

    def _setup_routes(self):
        """Setup API routes."""

        @self.app.get("/health", response_model=Dict[str, str])
        def health_check():
            """Health check endpoint."""
            return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

        # Registration endpoints
        @self.app.post("/registrations", response_model=OperationResponse)
        def register(request: RegistrationRequest, caller: Caller = Depends(get_caller)):
            """Register a student for a section."""
            self._require_self_or_admin(caller, request.student_id)
            return to_response(self._registration_service.register(request.student_id,
                                                                   request.section_id))

        @self.app.post("/registrations/drop", response_model=OperationResponse)
        def drop(request: RegistrationRequest, caller: Caller = Depends(get_caller)):
            """Drop a section."""
            self._require_self_or_admin(caller, request.student_id)
            return to_response(self._registration_service.drop(request.student_id,
                                                               request.section_id))

        @self.app.get("/students/{student_id}/timetable", response_model=List[Dict[str, Any]])
        def timetable(student_id: int, caller: Caller = Depends(get_caller)):
            self._require_self_or_admin(caller, student_id)
            return [e.to_dict() for e in self._registration_service.timetable(student_id)]

        @self.app.get("/students/{student_id}/enrollments", response_model=List[Dict[str, Any]])
        def enrollments(student_id: int, caller: Caller = Depends(get_caller)):
            self._require_self_or_admin(caller, student_id)
            return [e.to_dict() for e in self._registration_service.enrollments(student_id)]

        @self.app.get("/students/{student_id}/transcript", response_model=List[Dict[str, Any]])
        def transcript(student_id: int, caller: Caller = Depends(get_caller)):
            self._require_self_or_admin(caller, student_id)
            return [e.to_dict() for e in self._registration_service.transcript(student_id)]

        @self.app.get("/students/{student_id}/cgpa", response_model=Dict[str, Any])
        def student_cgpa(student_id: int, caller: Caller = Depends(get_caller)):
            self._require_self_or_admin(caller, student_id)
            return {"student_id": student_id, "cgpa": self._grading_service.student_cgpa(student_id)}

        # Grading endpoints
        @self.app.put("/sections/{section_id}/assessments/{student_id}",
                      response_model=OperationResponse)
        def enter_scores(section_id: int, student_id: int, scores: ScoresRequest,
                         caller: Caller = Depends(get_caller)):
            """Enter or update component scores."""
            return to_response(self._grading_service.enter_scores(
                caller.role, caller.user_id, student_id, section_id,
                quiz=scores.quiz, midterm=scores.midterm, final=scores.final))

        @self.app.post("/sections/{section_id}/final-grades", response_model=OperationResponse)
        def finalize_section(section_id: int, caller: Caller = Depends(get_caller)):
            """Compute final grades for the whole section."""
            return to_response(self._grading_service.finalize_section(
                caller.role, caller.user_id, section_id))

        @self.app.post("/sections/{section_id}/final-grades/{student_id}",
                       response_model=OperationResponse)
        def finalize_grade(section_id: int, student_id: int, caller: Caller = Depends(get_caller)):
            """Compute one student's final grade."""
            return to_response(self._grading_service.finalize_grade(
                caller.role, caller.user_id, student_id, section_id))

        @self.app.get("/sections/{section_id}/roster", response_model=OperationResponse)
        def section_roster(section_id: int, caller: Caller = Depends(get_caller)):
            """Students currently enrolled in a section."""
            return to_response(self._grading_service.section_roster(
                caller.role, caller.user_id, section_id))

        @self.app.get("/sections/{section_id}/grades", response_model=OperationResponse)
        def section_grades(section_id: int, caller: Caller = Depends(get_caller)):
            return to_response(self._grading_service.section_grades(
                caller.role, caller.user_id, section_id))

        @self.app.get("/sections/{section_id}/statistics", response_model=OperationResponse)
        def section_statistics(section_id: int, caller: Caller = Depends(get_caller)):
            return to_response(self._grading_service.section_statistics(
                caller.role, caller.user_id, section_id))

        # Administration endpoints
        @self.app.post("/courses", response_model=OperationResponse,
                       status_code=status.HTTP_201_CREATED)
        def create_course(course_data: CourseCreate, caller: Caller = Depends(get_caller)):
            """Create a new course."""
            return to_response(self._administration_service.create_course(
                caller.role, course_data.code, course_data.title, course_data.credits))

        @self.app.get("/courses", response_model=List[Dict[str, Any]])
        def list_courses(caller: Caller = Depends(get_caller)):
            """The course catalogue."""
            return [c.to_dict() for c in self._administration_service.courses()]

        @self.app.put("/courses/{course_id}", response_model=OperationResponse)
        def update_course(course_id: int, course_data: CourseUpdate,
                          caller: Caller = Depends(get_caller)):
            return to_response(self._administration_service.update_course(
                caller.role, course_id, course_data.title, course_data.credits))

        @self.app.get("/sections", response_model=List[Dict[str, Any]])
        def list_sections(semester: Optional[str] = None, year: Optional[int] = None,
                          caller: Caller = Depends(get_caller)):
            """Sections on offer, optionally for one term."""
            return [s.to_dict() for s in self._administration_service.sections(semester, year)]

        @self.app.post("/sections", response_model=OperationResponse,
                       status_code=status.HTTP_201_CREATED)
        def create_section(section_data: SectionCreate, caller: Caller = Depends(get_caller)):
            """Create a new section."""
            return to_response(self._administration_service.create_section(
                caller.role,
                course_id=section_data.course_id,
                section_name=section_data.section_name,
                schedule_text=section_data.schedule_text,
                capacity=section_data.capacity,
                semester=section_data.semester,
                year=section_data.year,
                instructor_id=section_data.instructor_id,
                drop_deadline=section_data.drop_deadline,
            ))

        @self.app.put("/sections/{section_id}/status", response_model=OperationResponse)
        def set_section_status(section_id: int, update: SectionStatusUpdate,
                               caller: Caller = Depends(get_caller)):
            return to_response(self._administration_service.set_section_status(
                caller.role, section_id, SectionStatus(update.status)))

        @self.app.put("/sections/{section_id}/instructor", response_model=OperationResponse)
        def assign_instructor(section_id: int, assignment: InstructorAssignment,
                              caller: Caller = Depends(get_caller)):
            return to_response(self._administration_service.assign_instructor(
                caller.role, section_id, assignment.instructor_id))

        @self.app.get("/maintenance", response_model=Dict[str, bool])
        def maintenance_status():
            return {"maintenance_mode": self._administration_service.maintenance_status()}

        @self.app.put("/maintenance", response_model=OperationResponse)
        def toggle_maintenance(update: MaintenanceUpdate, caller: Caller = Depends(get_caller)):
            return to_response(self._administration_service.toggle_maintenance_mode(
                caller.role, update.enabled))

        # Utilities
        @self.app.post("/schedules/conflicts", response_model=ConflictCheckResponse)
        def check_conflict(request: ConflictCheckRequest):
            """Check whether two schedule strings clash."""
            slot_a = parse_schedule(request.schedule_a)
            slot_b = parse_schedule(request.schedule_b)
            return ConflictCheckResponse(
                conflict=conflicts(slot_a, slot_b),
                slot_a=str(slot_a) if slot_a else None,
                slot_b=str(slot_b) if slot_b else None,
            )
