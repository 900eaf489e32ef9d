"""
Property-based tests for output path derivation.

For any binding set and format list without slug collisions, every job
gets its own path, and slugs never contain path separators.
"""

import pytest
from hypothesis import HealthCheck, assume, given, settings, strategies as st

from batchrender.bindings import enumerate_bindings
from batchrender.errors import ConfigurationError, OutputCollisionError
from batchrender.formats import CANONICAL_EXTENSIONS, VALID_FORMATS
from batchrender.jobs import JobBuilder
from batchrender.layout import OutputLayout, slugify


slug_safe_values = st.lists(
    st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789", min_size=1, max_size=8),
    min_size=1,
    max_size=4,
    unique=True,
)
distinct_extension_formats = st.lists(
    st.sampled_from(["pdf", "html", "docx", "md", "pptx"]), min_size=1, max_size=3, unique=True
)


class TestLayoutProperties:
    """Properties of OutputLayout."""

    @given(value=st.text(min_size=1, max_size=30))
    @settings(max_examples=100, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_slug_is_path_safe(self, value):
        try:
            slug = slugify(value)
        except ConfigurationError:
            return

        assert slug
        assert slug == slug.lower()
        assert "/" not in slug and "\\" not in slug and "_" not in slug
        assert slug not in (".", "..")
        assert slugify(slug) == slug

    @given(units=slug_safe_values, periods=slug_safe_values, formats=distinct_extension_formats)
    @settings(max_examples=50, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_distinct_slugs_give_distinct_paths(self, units, periods, formats):
        bindings = enumerate_bindings({"unit": units, "period": periods})
        layout = OutputLayout()

        jobs = JobBuilder(layout).build_all("report.qmd", bindings, formats)
        layout.check_collisions(jobs)

        assert len({str(j.output_path) for j in jobs}) == len(jobs) == len(bindings) * len(formats)

    @given(units=slug_safe_values, fmt=st.sampled_from(VALID_FORMATS))
    @settings(max_examples=50, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_path_shape(self, units, fmt):
        for job in JobBuilder().build_all("report.qmd", enumerate_bindings({"unit": units}), [fmt]):
            unit = job.binding.value_of("unit")
            assert job.output_path.parts == (unit, f"{unit}.{CANONICAL_EXTENSIONS[job.output_format]}")

    @given(value=st.text(alphabet="abcXYZ -", min_size=1, max_size=6))
    @settings(max_examples=50, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_case_variants_are_detected(self, value):
        try:
            slugify(value)
        except ConfigurationError:
            return
        assume(value != value.upper())
        bindings = enumerate_bindings({"unit": [value, value.upper()]})
        layout = OutputLayout()

        jobs = JobBuilder(layout).build_all("report.qmd", bindings, ["pdf"])

        with pytest.raises(OutputCollisionError) as exc_info:
            layout.check_collisions(jobs)

        assert exc_info.value.path == str(jobs[0].output_path)
