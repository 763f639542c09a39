"""Property-based tests for DAG template parameter derivation."""

from hypothesis import given, strategies as st

from src.pipeweaver.definitions.models import DataRef, PipelineDefinition, Schedule, Step
from src.pipeweaver.generator.params import (
    KNOWN_SOURCE_SYSTEMS,
    UNSCHEDULED,
    build_template_params,
    find_data_ref,
    schedule_interval,
)

# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

names = st.text(alphabet="abcdefghijklmnopqrstuvwxyz_", min_size=1, max_size=12)
values = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789./:", max_size=20)
kinds = st.sampled_from(["postgres", "Postgres", "snowflake", "SNOWFLAKE", "s3", "mysql", "kafka", ""])


@st.composite
def data_refs(draw):
    return DataRef(
        name=draw(names),
        kind=draw(kinds),
        path=draw(values),
        table=draw(values),
        host=draw(values),
        database=draw(values),
    )


@st.composite
def steps(draw):
    return Step(
        name=draw(names),
        inputs=draw(st.lists(data_refs(), max_size=3)),
        outputs=draw(st.lists(data_refs(), max_size=3)),
    )


step_lists = st.lists(steps(), max_size=4)


def _reference_scan(step_list, system_name):
    refs = [ref for step in step_list for ref in [*step.inputs, *step.outputs]]
    for ref in refs:
        if system_name in ref.kind.lower():
            return ref
    return None


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


@given(step_list=step_lists, system=st.sampled_from([s.name for s in KNOWN_SOURCE_SYSTEMS]))
def test_find_data_ref_returns_first_match_in_scan_order(step_list, system):
    assert find_data_ref(step_list, system) is _reference_scan(step_list, system)


@given(step_list=step_lists)
def test_params_mirror_first_matching_ref(step_list):
    params = build_template_params(PipelineDefinition(name="p", version="1.0", steps=step_list))

    for system in KNOWN_SOURCE_SYSTEMS:
        expected = _reference_scan(step_list, system.name)
        for field_name in system.fields:
            actual = getattr(params, f"{system.name}_{field_name}")
            assert actual == (getattr(expected, field_name) if expected else "")


@given(step_list=step_lists)
def test_task_name_is_first_step_or_default(step_list):
    params = build_template_params(PipelineDefinition(name="p", steps=step_list))
    assert params.task_name == (step_list[0].name if step_list else "default_task")


@given(expression=st.text(max_size=30))
def test_schedule_interval_quotes_any_non_empty_expression(expression):
    result = schedule_interval(Schedule(expression=expression))
    if expression:
        assert result == f'"{expression}"'
    else:
        assert result == UNSCHEDULED
