"""Compute jobs: containers run by the platform over documents."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field

from ..errors import ApiError
from ..models import Page, PageParams, ParcelModel
from ..telemetry import get_logger, traced_async
from ..types import DocumentId, IdentityId, JobId
from .base import ResourceAPI, coerce, require_id


class JobPhase(StrEnum):
    """Lifecycle phase of a job. Transitions happen on the platform."""

    QUEUED = "Queued"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    TERMINATED = "Terminated"

    @classmethod
    def _missing_(cls, value: object) -> JobPhase | None:
        if isinstance(value, str):
            if value.lower() == "pending":
                return cls.QUEUED
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return None

    @property
    def is_terminal(self) -> bool:
        return self in (JobPhase.SUCCEEDED, JobPhase.FAILED, JobPhase.TERMINATED)


class InputDocumentSpec(ParcelModel):
    """A document to mount read-only into the job's container."""

    mount_path: str = Field(..., min_length=1)
    id: DocumentId


class OutputDocumentSpec(ParcelModel):
    """A file the job will produce, uploaded as a document owned by ``owner``."""

    mount_path: str = Field(..., min_length=1)
    owner: IdentityId


class OutputDocument(ParcelModel):
    mount_path: str
    id: DocumentId


class JobSpec(ParcelModel):
    name: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1)
    cmd: list[str] | None = None
    env: dict[str, str] | None = None
    input_documents: list[InputDocumentSpec] = Field(default_factory=list)
    output_documents: list[OutputDocumentSpec] = Field(default_factory=list)
    memory: str | None = None
    cpus: float | None = Field(default=None, gt=0)


class JobStatus(ParcelModel):
    phase: JobPhase
    message: str | None = None
    # The worker the job was scheduled on, once known.
    host: str | None = None
    output_documents: list[OutputDocument] = Field(default_factory=list)


class JobStatusReport(ParcelModel):
    id: JobId
    status: JobStatus


class Job(ParcelModel):
    id: JobId
    spec: JobSpec
    status: JobStatus | None = None

    @property
    def phase(self) -> JobPhase | None:
        return self.status.phase if self.status is not None else None


class ListJobsFilter(PageParams):
    pass


class ComputeAPI(ResourceAPI):
    """Operations on ``/compute/jobs``."""

    @traced_async("parcel.compute.submit_job")
    async def submit_job(self, spec: JobSpec | dict[str, Any]) -> Job:
        spec = coerce(JobSpec, spec)
        data = await self._http.post("compute/jobs", json=spec.to_wire())
        job = Job.model_validate(data)
        get_logger().info("Job submitted", job_id=job.id, image=spec.image)
        return job

    @traced_async("parcel.compute.list_jobs")
    async def list_jobs(
        self,
        params: ListJobsFilter | dict[str, Any] | None = None,
    ) -> Page[Job]:
        query = coerce(ListJobsFilter, params)
        data = await self._http.get("compute/jobs", params=query.to_query())
        return Page[Job].model_validate(data)

    @traced_async("parcel.compute.get_job", record_ids=True)
    async def get_job(self, job_id: JobId) -> Job:
        data = await self._http.get(f"compute/jobs/{require_id(job_id, 'job_id')}")
        return Job.model_validate(data)

    @traced_async("parcel.compute.get_job_status", record_ids=True)
    async def get_job_status(self, job_id: JobId) -> JobStatusReport:
        """Fetch only the job's status; cheaper than :meth:`get_job` for polling."""
        data = await self._http.get(f"compute/jobs/{require_id(job_id, 'job_id')}/status")
        return JobStatusReport.model_validate(data)

    @traced_async("parcel.compute.terminate_job", record_ids=True)
    async def terminate_job(self, job_id: JobId) -> None:
        """Schedule the job for termination.

        Terminating an already finished or unknown job is not an error.
        """
        path = f"compute/jobs/{require_id(job_id, 'job_id')}"
        try:
            await self._http.delete(path)
        except ApiError as e:
            if not e.is_not_found:
                raise
            get_logger().debug("Job already gone", job_id=job_id)
