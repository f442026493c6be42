from .fields import Stage, project_record
from .schemas import ReferenceDates, StagePlan, SetField, BulkSetStagePlanDates, UpdateResult
from .milestones import project_stage
from .status import resolve_stage, l1_status, l2_status, l3_status
from .derive import derive_record, derive_batch
