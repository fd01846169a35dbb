"""
Message texts and interactive attachments.
"""

from typing import Any, Dict, List

CHALLENGE_CALLBACK_ID = "tender_button"


def mention(user_id: str) -> str:
    return f"<@{user_id}>"


def challenged_bot(challenger_id: str) -> str:
    return f"{mention(challenger_id)} tried to challenge a bot :robot_face:"


def feeling_lonely(user_id: str) -> str:
    return f"{mention(user_id)} is feeling lonely :sob:"


def challenge_issued(challenger_id: str, challengee_id: str) -> str:
    return f"{mention(challenger_id)} challenged {mention(challengee_id)} to a game!"


def challenge_prompt(challenger_id: str) -> str:
    return f"Accept {mention(challenger_id)}’s challenge?"


def already_pending() -> str:
    return "You have already made a pending challenge!"


def challenge_response(challengee_id: str, challenger_id: str, action: str) -> str:
    return f"{mention(challengee_id)} {action} {mention(challenger_id)}’s challenge"


def challenge_response_reply(challenger_id: str, action: str) -> str:
    return f"You {action} {mention(challenger_id)}’s challenge"


def already_resolved(challenger_id: str) -> str:
    return f"{mention(challenger_id)}’s challenge has already been answered."


def not_your_challenge(action_name: str) -> str:
    return f"You can’t {action_name} someone else’s challenge!"


def challenge_not_found() -> str:
    return "Sorry, that challenge could not be found."


def draw(loser_id: str, victor_id: str, score: int) -> str:
    return f"{mention(loser_id)} and {mention(victor_id)} drew {score} all!"


def scored_loss(loser_id: str, victor_id: str, losing_score: int, winning_score: int) -> str:
    return f"{mention(loser_id)} lost to {mention(victor_id)} {losing_score} – {winning_score}!"


def bare_loss(loser_id: str, victor_id: str) -> str:
    return f"{mention(loser_id)} lost to {mention(victor_id)} (no score given)"


def challenge_buttons(challenger_id: str) -> List[Dict[str, Any]]:
    """Accept/decline buttons; each carries the challenger's id as its value."""
    return [
        {
            "callback_id": CHALLENGE_CALLBACK_ID,
            "attachment_type": "default",
            "fallback": "Oops! Something went wrong.",
            "actions": [
                {
                    "name": "accept",
                    "text": "Accept",
                    "type": "button",
                    "style": "primary",
                    "value": challenger_id,
                },
                {
                    "name": "decline",
                    "text": "Decline",
                    "type": "button",
                    "style": "default",
                    "value": challenger_id,
                },
            ],
        }
    ]


def results_header(subject_id: str) -> str:
    return f"Recent results for {mention(subject_id)}:"


def result_line(victor_id: str, loser_id: str, winning_score: int, losing_score: int) -> str:
    return f"• {mention(victor_id)} beat {mention(loser_id)} {winning_score} – {losing_score}"


def no_results(subject_id: str) -> str:
    return f"No results recorded for {mention(subject_id)} yet."
