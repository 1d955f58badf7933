"""Preset data-chat tabs for the Accion Operations app."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

_RMG_INSTRUCTION = """\
You are a data analysis assistant for the Resource Management Group (RMG) team. Analyze the \
provided bench data and always use the entire dataset unless the user explicitly filters it.

Column mapping:
- Entity: company entity such as 'Accionlabs', 'e-Zest', 'Motifworks'; group or filter by it \
when asked per entity.
- EMP Name: use when giving details about specific employees.
- Role/Designation: filter on it when the user asks for a specific role.
- Experience: use for all experience-related queries.
- Skill bracket: general skill category filter.
- Primary skills and Secondary skills: combine both for any technology query.
- Bench state date: use to compute how long a resource has been on the bench.
- Previous project and Previous manager: history before benching.
- Reason: why the resource came to the bench, if available.
- LWD (Last Working Day): identifies resources on notice or marked ATG (Asked to Go).
- Location: when empty treat it as 'Remote'; most queries are location-based.
- Lead and Blocked Date: resources blocked for a project and by whom.
- Overall status: the foundational classification (Bench, ML for Maternity Leave, ATG).
EMP Code, Remarks, and Comments/action are low priority.

Output: simple bullet points or short sentences. Do not use tables unless the user asks for one."""

_RECRUITMENT_INSTRUCTION = """\
You are a data analysis assistant for a talent acquisition team. Analyze the recruitment data \
using the entire dataset; never group by Owner Name or any other field unless explicitly asked. \
For "How many open positions are there?" count every record whose Position Status is 'Active'.

Column mapping:
- Owner Name: the individual responsible for the opportunity.
- Revised Start Date: the authoritative start date; ignore Month and Position Start Date.
- Client Name: frequent grouping and filtering field.
- BUH, Delivery Director, Delivery Manager, TA Lead, Recruiter: stakeholder filters.
- Position Title/Role: role filter; 'QA' matches any QA-related role.
- Must have skills: comma-separated; a skill matches if it appears anywhere in the list.
- Engagement type, Requirement type, Position type, Replacement category, Closability days, \
Priority: filters.
- Location: treat aliases as equal ('BengaIuru' and 'Bengaluru', 'HYD' and 'Hyderabad').
- Position Status: treat fulfilled, full filled and Full-Filled as one status, and Hold and \
On-Hold as one status."""


@dataclass(frozen=True)
class ChatProfile:
    """A chat tab: prompt context plus an optional bundled data file."""

    id: str
    title: str
    data_description: str
    welcome_message: str
    suggested_questions: list[str] = field(default_factory=list)
    system_instruction: str | None = None
    data_file: str | None = None

    def data_path(self, assets_dir: Path) -> Path | None:
        """Resolve the bundled data file under ``assets_dir``, if any."""
        return assets_dir / self.data_file if self.data_file else None


CHAT_PROFILES: dict[str, ChatProfile] = {
    profile.id: profile
    for profile in (
        ChatProfile(
            id="rmg",
            title="Resource Management Group (RMG)",
            data_description=(
                "a list of employees in the Resource Management Group. It includes their "
                "skills, experience, location, and overall status."
            ),
            welcome_message="I have the RMG data. Ask me a question, or try one of the suggestions below.",
            suggested_questions=[
                "How many people are on the Bench?",
                "List everyone in the ATG group",
                "Who has Python skills?",
            ],
            system_instruction=_RMG_INSTRUCTION,
            data_file="benchdata.xlsx",
        ),
        ChatProfile(
            id="recruitment",
            title="Recruitment",
            data_description=(
                "a list of current open job positions in the company. It includes job titles, "
                "departments, locations, and posting dates."
            ),
            welcome_message=(
                "I have the open positions data. Ask me a question, or try one of the suggestions below."
            ),
            suggested_questions=[
                "How many Senior Engineer roles are open?",
                "Which roles are open in the USA?",
                "List all open positions for the 'Data' department",
            ],
            system_instruction=_RECRUITMENT_INSTRUCTION,
            data_file="TAGMaster.xlsx",
        ),
        ChatProfile(
            id="account-data",
            title="Account Data",
            data_description=(
                "a set of tables with delivery unit metrics and customer group metrics. This "
                "data includes revenue and headcount for a specific month."
            ),
            welcome_message="I have the account data. Ask me a question, or try one of the suggestions below.",
            suggested_questions=[
                "What is the total revenue?",
                "Which customer group has the highest headcount?",
                "Show me the metrics for 'Delivery Unit 1'",
            ],
            data_file="Revenue.xlsx",
        ),
    )
}

DEFAULT_DATA_DESCRIPTION = "the uploaded dataset"
DEFAULT_WELCOME_MESSAGE = "I have your data. Ask me a question about it."


def get_profile(profile_id: str) -> ChatProfile | None:
    """Return the chat profile with the given ID, if it exists."""
    return CHAT_PROFILES.get(profile_id)
