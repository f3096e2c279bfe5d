import streamlit as st

from gpa_planner.calculator import format_credits
from gpa_planner.config import get_settings
from gpa_planner.errors import GpaPlannerError
from gpa_planner.io_csv import (
    grade_scale_from_csv,
    plan_rows_from_frame,
    plan_to_frame,
    read_csv_upload,
    registrations_from_csv,
)
from gpa_planner.logging_config import configure_logging
from gpa_planner.share import build_share_url, parse_payload, state_from_share_payload
from gpa_planner.state import (
    CalculatorState,
    add_course,
    apply_plan_edits,
    edit_snapshot,
    edits_were_cleared,
    load_grade_scale,
    load_plan,
    plan_from_registrations,
    reset_all,
    reset_plan,
    set_targets,
)

configure_logging()
settings = get_settings()

st.set_page_config(
    page_title="GPA Planner | Semester, Projected & Required GPA",
    page_icon="🎓",
    layout="wide",
)

st.title("🎓 GPA Planner")
st.write(
    "Plan this term's courses and see your semester GPA, your projected cumulative GPA "
    "(with grade replacement for repeated courses), and the semester GPA you need to reach a target."
)


# ------------------------
# Session state
# ------------------------

def _save(state: CalculatorState, refresh_editor: bool = True) -> None:
    st.session_state["calculator_state"] = state
    if refresh_editor:
        st.session_state["editor_version"] = st.session_state.get("editor_version", 0) + 1


if "calculator_state" not in st.session_state:
    state = CalculatorState()
    shared = st.query_params.get("data")
    if shared:
        try:
            state = state_from_share_payload(parse_payload(shared), state.grade_scale)
        except GpaPlannerError as e:
            st.error(f"Could not open shared link: {e}")
    _save(state)

state = st.session_state["calculator_state"]
scale = state.grade_scale

if state.student_id:
    st.caption(f"Student: {state.student_id}")
if state.base_data_note:
    st.info(state.base_data_note)


# ------------------------
# Optional uploads
# ------------------------

with st.expander("Load a grade scale or registrations from CSV"):
    with st.form("upload_form"):
        up1, up2 = st.columns(2)
        with up1:
            scale_csv = st.file_uploader(
                "Grade scale CSV (Grade, Point, Note)",
                type=["csv"],
                key="scale_csv",
            )
        with up2:
            registrations_csv = st.file_uploader(
                "Registrations CSV (CatalogKey, Credits, RegGrade, MajorCourse, Rpeat, PrevGrade)",
                type=["csv"],
                key="registrations_csv",
            )
        load_files = st.form_submit_button("Load files")

    if load_files:
        try:
            if scale_csv is not None:
                state = load_grade_scale(state, grade_scale_from_csv(read_csv_upload(scale_csv)))
                scale = state.grade_scale
            if registrations_csv is not None:
                registrations = registrations_from_csv(read_csv_upload(registrations_csv))
                state = load_plan(state, plan_from_registrations(registrations, scale))
        except GpaPlannerError as e:
            st.error(f"CSV error: {e}")
        else:
            _save(state)
            st.success("Files loaded.")


# ------------------------
# Base data and targets
# ------------------------

st.subheader("1. Your record and targets")

with st.form("base_data_form"):
    c1, c2, c3, c4 = st.columns(4)
    snapshot = state.snapshot
    with c1:
        overall_credits = st.number_input("Overall GPA credits", step=1.0,
                                          value=float(snapshot.overall_credits))
        overall_points = st.number_input("Overall quality points", step=1.0,
                                         value=float(snapshot.overall_points))
    with c2:
        major_credits = st.number_input("Major GPA credits", step=1.0,
                                        value=float(snapshot.major_credits))
        major_points = st.number_input("Major quality points", step=1.0,
                                       value=float(snapshot.major_points))
    with c3:
        target_overall = st.number_input("Target overall GPA", step=0.1, format="%.2f",
                                         value=float(state.target_overall))
    with c4:
        target_major = st.number_input("Target major GPA", step=0.1, format="%.2f",
                                       value=float(state.target_major))

    update_base = st.form_submit_button("Update", type="primary")

if update_base:
    state = edit_snapshot(
        state,
        overall_credits=overall_credits,
        overall_points=overall_points,
        major_credits=major_credits,
        major_points=major_points,
    )
    state = set_targets(state, overall=target_overall, major=target_major)
    _save(state, refresh_editor=False)


# ------------------------
# Semester planner
# ------------------------

st.subheader("2. This term's courses")
st.markdown(
    "Pick a grade for each course, or leave it blank to have the target calculation solve for it. "
    "Tick **Repeat** and choose the previous grade for a course you are retaking. For a repeat "
    "graded **P**, tick **Orig. Major** if the original attempt counted toward your major GPA."
)

grade_options = scale.grades()
edited_df = st.data_editor(
    plan_to_frame(state.plan),
    key=f"planner_editor_{st.session_state.get('editor_version', 0)}",
    num_rows="dynamic",
    use_container_width=True,
    hide_index=True,
    column_config={
        "id": None,
        "Course": st.column_config.TextColumn("Course"),
        "Credits": st.column_config.NumberColumn("Credits", min_value=0, step=1, format="%g"),
        "Grade": st.column_config.SelectboxColumn("Grade", options=grade_options),
        "Major": st.column_config.CheckboxColumn("Major"),
        "Repeat": st.column_config.CheckboxColumn("Repeat"),
        "Prev Grade": st.column_config.SelectboxColumn("Prev Grade", options=grade_options),
        "Orig. Major (P-repeat)": st.column_config.CheckboxColumn("Orig. Major (P-repeat)"),
    },
)

plan_rows = plan_rows_from_frame(edited_df)
edited_state = apply_plan_edits(state, plan_rows)
if edited_state.plan != state.plan or edits_were_cleared(edited_state, plan_rows):
    _save(edited_state)
    st.rerun()

b1, b2, b3, _ = st.columns([1, 1, 1, 3])
with b1:
    if st.button("Add course"):
        _save(add_course(state))
        st.rerun()
with b2:
    if st.button("Reset planner"):
        _save(reset_plan(state))
        st.rerun()
with b3:
    if st.button("Reset all"):
        _save(reset_all(state))
        st.rerun()


# ------------------------
# Results
# ------------------------

reports = state.reports()

st.markdown("---")
st.subheader("3. Results")

displayed = {}

st.markdown("**Current (before this term)**")
col1, col2 = st.columns(2)
with col1:
    displayed["current_overall"] = reports.current.overall.display
    st.metric("Overall GPA", displayed["current_overall"])
with col2:
    displayed["current_major"] = reports.current.major.display
    st.metric("Major GPA", displayed["current_major"])

st.markdown("**This term**")
col1, col2 = st.columns(2)
with col1:
    displayed["semester_overall"] = reports.semester.overall.display
    st.metric("Semester GPA", displayed["semester_overall"],
              help=f"{format_credits(reports.semester.overall_credits)} GPA credits")
with col2:
    displayed["semester_major"] = reports.semester.major.display
    st.metric("Semester major GPA", displayed["semester_major"],
              help=f"{format_credits(reports.semester.major_credits)} major GPA credits")

st.markdown("**Projected after this term**")
col1, col2 = st.columns(2)
with col1:
    displayed["projected_overall"] = reports.projected.overall.display
    st.metric("Projected overall GPA", displayed["projected_overall"])
with col2:
    displayed["projected_major"] = reports.projected.major.display
    st.metric("Projected major GPA", displayed["projected_major"])

st.markdown("**Required this term**")
col1, col2 = st.columns(2)
for col, name, axis in ((col1, "overall", reports.required.overall), (col2, "major", reports.required.major)):
    with col:
        displayed[f"required_{name}"] = axis.display_string
        st.markdown(f"Semester GPA needed for a {name} GPA of **{axis.target:.2f}**:")
        st.markdown(f"### {axis.display_string}")
        if axis.is_impossible:
            st.error(f"❌ {axis.warning}")

st.session_state["displayed_values"] = displayed

st.page_link("pages/1_Calculation_Details.py", label="See how these numbers were calculated", icon="🧮")


# ------------------------
# Share
# ------------------------

st.markdown("---")
st.subheader("Share this plan")
st.write("Anyone with the link sees your record, planner and targets as they are now.")
st.code(build_share_url(settings.share_base_url or "", state), language=None)


st.header("FAQ")

st.subheader("How are repeated courses handled?")
st.write(
    "When you repeat a course, the new grade replaces the previous one. If the new grade is a "
    "**P**, the previous attempt's points and credits are removed from your GPA entirely."
)

st.subheader("Why is a course not included in the required GPA?")
st.write(
    "Withdrawn (W), exempt (E), incomplete (I) and in-progress (IP) courses, and first-attempt "
    "passes (P), have no bearing on a target and are left out of that calculation."
)

st.subheader("What data do you collect or store?")
st.write(
    "This tool does **not** store your data. Everything you enter stays in your browser session, "
    "except what you choose to put in a share link."
)

st.subheader("Does this tool guarantee my GPA?")
st.write(
    "No. This calculator is for planning only. Your official GPA is determined by the registrar."
)
