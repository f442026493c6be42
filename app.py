import logging
from datetime import date
from typing import Any, Dict, List

import plotly.express as px
import streamlit as st
from pydantic import ValidationError

from config.settings import DEFAULT_REFERENCE_DATES, PAGE_SIZES, configure_logging, load_settings
from cx_core.dates import coerce_date, to_input_date
from cx_core.derive import (
    ALL, LEVELS, derive_batch, filter_options, filter_records, page_count, paginate, summarize, to_rows,
)
from cx_core.fields import Stage, editable_fields, project_record, storage_name
from cx_core.intents import submit
from cx_core.schemas import ReferenceDates, StagePlan
from data.firestore import StoreConfigError, get_store, to_wire
from services.exports import XLSX_MIME, rows_to_frame, to_csv_bytes, to_excel_bytes, to_pdf_bytes
from services.ui_helpers import STATUS_COLORS, status_chart_frame, status_columns, style_status

st.set_page_config(
    page_title="Cx Tracker",
    page_icon="🏷️",
    layout="wide",
    initial_sidebar_state="expanded"
)

SETTINGS = load_settings()
configure_logging(SETTINGS.log_level)
logger = logging.getLogger("cx_tracker")


def _rerun():
    if hasattr(st, "rerun"):
        st.rerun()
    else:  # for older Streamlit
        st.experimental_rerun()


@st.cache_resource(show_spinner=False)
def _store():
    return get_store(SETTINGS)


@st.cache_data(ttl=SETTINGS.cache_ttl, show_spinner="Loading equipment…")
def _load_rows(mode: str) -> List[Dict[str, Any]]:
    # `mode` only keys the cache; the store itself is a cached resource
    return _store().load_all()


def _after_write(result, success_msg: str):
    if result.ok:
        _load_rows.clear()
        st.session_state["flash"] = success_msg
        _rerun()
    else:
        st.error(f"Update failed: {result.error}")


# ---------------- data ----------------
try:
    store = _store()
    raw_rows = _load_rows(store.mode)
except StoreConfigError as e:
    st.error(str(e))
    st.stop()
except Exception as e:
    logger.exception("Loading equipment failed")
    st.error(f"Could not load equipment: {e}")
    st.stop()

records = [project_record(r) for r in raw_rows]

st.title("🏷️ Commissioning Tracker")
st.caption(f"L1 RED TAG → L2 YELLOW TAG → L3 GREEN TAG · data source: {store.mode}")
if st.session_state.get("flash"):
    st.success(st.session_state.pop("flash"))

# ---------------- sidebar ----------------
with st.sidebar:
    st.header("Filters")
    vendor = st.selectbox("Subcont/ Vendor", filter_options(records, "subcont_vendor"))
    area = st.selectbox("Area", filter_options(records, "area"))
    level = st.selectbox("Level", LEVELS)
    search = st.text_input("Search", placeholder="Equipment ID, area or vendor")

    st.header("Plan dates")
    plans: Dict[str, Any] = {}
    for stage in Stage:
        default = DEFAULT_REFERENCE_DATES.for_stage(stage)
        c1, c2 = st.columns(2)
        with c1:
            start = st.date_input(f"{stage.value} start", value=default.plan_start, key=f"plan_{stage.value}_start")
        with c2:
            end = st.date_input(f"{stage.value} end", value=default.plan_end, key=f"plan_{stage.value}_end")
        plans[stage.value.lower()] = {"plan_start": start, "plan_end": end}
    try:
        refs = ReferenceDates(**{k: StagePlan(**v) for k, v in plans.items()})
    except ValidationError:
        st.error("Plan end must not be before plan start; using the default plan dates.")
        refs = DEFAULT_REFERENCE_DATES

    st.header("View")
    as_of = st.date_input("Status as of", value=date.today())
    default_size = SETTINGS.page_size if SETTINGS.page_size in PAGE_SIZES else PAGE_SIZES[0]
    page_size = st.selectbox("Rows per page", PAGE_SIZES, index=PAGE_SIZES.index(default_size))
    show_debug = st.checkbox("Show debug JSON", value=False)

# ---------------- derive ----------------
filtered = filter_records(records, vendor, area, search)
views = derive_batch(filtered, refs, as_of)
summary = summarize(views)
show_type = vendor == ALL and area == ALL and not search.strip()

# ---------------- KPIs ----------------
k1, k2, k3, k4 = st.columns(4)
k1.metric("Equipment", summary.total)
k2.metric("Red Tag Passed", summary.passed["L1"])
k3.metric("YT Passed", summary.passed["L2"])
k4.metric("Green Tag Completed", summary.passed["L3"])

if summary.areas:
    with st.expander("Equipment per area", expanded=False):
        st.dataframe(
            rows_to_frame([{"Area": a, "Equipment": n} for a, n in sorted(summary.areas.items())]),
            use_container_width=True, hide_index=True,
        )

chart_df = status_chart_frame(views)
if not chart_df.empty:
    fig = px.bar(chart_df, x="Stage", y="Count", color="Tone", barmode="stack",
                 color_discrete_map=STATUS_COLORS, title="Status by stage")
    st.plotly_chart(fig, use_container_width=True)

# ---------------- table ----------------
pages = page_count(len(views), page_size)
page = st.number_input("Page", min_value=1, max_value=pages, value=1, step=1)
page_views = paginate(views, int(page), page_size)
offset = (int(page) - 1) * page_size
st.caption(f"Showing {len(page_views)} of {len(views)} equipment · page {page}/{pages}")

df = rows_to_frame(to_rows(page_views, level, show_type, offset))
if df.empty:
    st.info("No equipment matches the current filters.")
else:
    styled = df.style
    for col in status_columns(level):
        if col in df.columns:
            stage = col.split(" ")[0]
            styled = styled.map(lambda v, s=stage: style_status(s, v), subset=[col])
    st.dataframe(styled, use_container_width=True, hide_index=True)

if show_debug and page_views:
    st.json([to_wire(v.record) for v in page_views])

# ---------------- downloads ----------------
all_df = rows_to_frame(to_rows(views, level, show_type))
d1, d2, d3 = st.columns(3)
with d1:
    st.download_button("📄 Download CSV", to_csv_bytes(all_df), file_name="cx_tracker.csv", mime="text/csv")
with d2:
    st.download_button("📄 Download Excel", to_excel_bytes(all_df), file_name="cx_tracker.xlsx", mime=XLSX_MIME)
with d3:
    st.download_button("📄 Download PDF", to_pdf_bytes(all_df), file_name="cx_tracker.pdf", mime="application/pdf")

# ---------------- edit ----------------
st.subheader("✏️ Edit milestone date")
if not views:
    st.caption("Nothing to edit.")
else:
    labels = {v.id: f"{v.record.get('equipment_id') or v.id} ({v.record.get('area') or '-'})" for v in views}
    by_id = {v.id: v.record for v in views}
    # selectors sit outside the form so the field list and date default follow them
    c0, c1, c2 = st.columns(3)
    with c0:
        edit_stage = st.selectbox("Stage", [s.value for s in Stage], key="edit_stage")
    specs = editable_fields(edit_stage)
    with c1:
        equipment_id = st.selectbox("Equipment", list(labels), format_func=lambda i: labels[i], key="edit_equipment")
    with c2:
        field_key = st.selectbox("Field", [f.key for f in specs],
                                 format_func=lambda k: next(f.label for f in specs if f.key == k), key="edit_key")
    stored = by_id[equipment_id].get(field_key)
    st.caption(f"{storage_name(field_key)}: {to_input_date(stored) or 'empty'}")
    with st.form("edit_field"):
        new_value = st.date_input("Date", value=coerce_date(stored) or as_of,
                                  key=f"edit_value_{equipment_id}_{field_key}")
        b1, b2 = st.columns(2)
        save = b1.form_submit_button("Save")
        reset = b2.form_submit_button("Reset to empty")
    if save:
        _after_write(submit(store, "set_field", equipment_id=equipment_id, field=field_key, value=new_value),
                     "Date saved.")
    elif reset:
        _after_write(submit(store, "reset_field", equipment_id=equipment_id, field=field_key),
                     "Date reset.")

# ---------------- bulk plan dates ----------------
st.subheader("🗓️ Set plan dates for an area")
areas = [a for a in filter_options(records, "area") if a != ALL]
if not areas:
    st.caption("No areas found.")
else:
    c1, c2 = st.columns(2)
    with c1:
        bulk_area = st.selectbox("Area", areas, key="bulk_area")
    with c2:
        bulk_stage = st.selectbox("Stage", [s.value for s in Stage], key="bulk_stage")
    default = DEFAULT_REFERENCE_DATES.for_stage(bulk_stage)
    with st.form("bulk_plan_dates"):
        c3, c4 = st.columns(2)
        with c3:
            bulk_start = st.date_input("Plan start", value=default.plan_start, key=f"bulk_start_{bulk_stage}")
        with c4:
            bulk_end = st.date_input("Plan end", value=default.plan_end, key=f"bulk_end_{bulk_stage}")
        apply_bulk = st.form_submit_button("Apply to area")
    if apply_bulk:
        result = submit(store, "bulk_plan_dates", area=bulk_area, stage=bulk_stage, start=bulk_start, end=bulk_end)
        _after_write(result, f"Updated {result.count or 0} equipment in {bulk_area}.")
