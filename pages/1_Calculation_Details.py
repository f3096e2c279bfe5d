import pandas as pd
import streamlit as st

from gpa_planner.explanation import build_explanation, verify_displayed
from gpa_planner.logging_config import configure_logging
from gpa_planner.state import CalculatorState

configure_logging()

st.set_page_config(
    page_title="GPA Planner | Calculation Details",
    page_icon="🧮",
    layout="wide",
)

st.title("🧮 Calculation details")
st.write(
    "Step-by-step breakdown of the figures on the calculator page, using exactly the same "
    "record, planner and targets."
)

state = st.session_state.get("calculator_state") or CalculatorState()
reports = state.reports()
explanation = build_explanation(state.plan, reports)

for section in explanation.sections:
    st.subheader(section.title)
    if section.lines:
        st.table(pd.DataFrame(list(section.lines), columns=["Step", "Value"]))
    if section.note:
        if section.is_warning:
            st.error(f"❌ {section.note}")
        else:
            st.caption(section.note)

st.subheader("Per-course effects")
if explanation.course_rows:
    st.dataframe(pd.DataFrame(list(explanation.course_rows)), use_container_width=True, hide_index=True)
else:
    st.info("No courses in planner.")


# ------------------------
# Verification
# ------------------------

st.markdown("---")
st.subheader("Verification")

displayed = st.session_state.get("displayed_values")
if not displayed:
    st.info("Open the calculator page first to compare its figures with this breakdown.")
else:
    mismatches = verify_displayed(reports, displayed)
    if mismatches:
        for key, (shown, expected) in mismatches.items():
            st.error(f"{key.replace('_', ' ').title()}: calculator page shows {shown}, breakdown gives {expected}.")
    else:
        st.success("✅ Every figure on the calculator page matches this breakdown.")

st.page_link("app.py", label="Back to the calculator", icon="🎓")
