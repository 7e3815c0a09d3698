"""Pure aggregation of a job's enrollment distribution into PipelineStats."""

from __future__ import annotations

from typing import Mapping, Sequence
from uuid import UUID

from pipeline_kernel.domain.results import PipelineStats
from pipeline_kernel.domain.values import StageDefinition


def compute_pipeline_stats(
    job_id: UUID,
    stages: Sequence[StageDefinition],
    stage_counts: Mapping[str, int],
) -> PipelineStats:
    """
    Build stats from the catalog (in order) and per-stage enrollment counts.

    Catalog stages appear first, zero counts included.  Stage keys present in
    ``stage_counts`` but missing from the catalog are appended in key order
    and take no part in conversion rates.  The rate for consecutive catalog
    stages A -> B is count(B) / count(A); pairs with count(A) == 0 are left
    out.
    """
    count_by_stage: dict[str, int] = {}
    for stage in stages:
        count_by_stage[stage.stage_id] = stage_counts.get(stage.stage_id, 0)
    for stage_id in sorted(stage_counts):
        if stage_id not in count_by_stage:
            count_by_stage[stage_id] = stage_counts[stage_id]

    conversion_rates: dict[tuple[str, str], float] = {}
    for source, dest in zip(stages, stages[1:]):
        source_count = count_by_stage[source.stage_id]
        if source_count > 0:
            conversion_rates[(source.stage_id, dest.stage_id)] = (
                count_by_stage[dest.stage_id] / source_count
            )

    return PipelineStats(
        job_id=job_id,
        total=sum(stage_counts.values()),
        count_by_stage=count_by_stage,
        conversion_rates=conversion_rates,
    )
