from dataclasses import dataclass, asdict

VERDICT_MARKER = "VERDICT:"
FEEDBACK_MARKER = "FEEDBACK:"

ERROR_VERDICT = "Error"
UNPARSEABLE_FEEDBACK = "Unable to parse response"
EMPTY_RESPONSE_FEEDBACK = "Failed to get response from AI"


@dataclass(frozen=True)
class EvaluationResult:
    verdict: str
    feedback: str
    passed: bool

    def to_dict(self) -> dict:
        return asdict(self)


def is_passing(verdict: str) -> bool:
    # Substring match: "Not Accepted" also counts as a pass
    return "accepted" in verdict.lower()


def empty_response_result() -> EvaluationResult:
    return EvaluationResult(verdict=ERROR_VERDICT, feedback=EMPTY_RESPONSE_FEEDBACK, passed=False)


def parse_evaluation_response(response: str) -> EvaluationResult:
    """
    Read the judge's two-line answer.

    Lines are scanned in order and a later VERDICT/FEEDBACK line overwrites
    an earlier one. Never raises; anything without a VERDICT line becomes
    an "Error" verdict.
    """
    verdict = None
    feedback = UNPARSEABLE_FEEDBACK

    for line in (response or "").split("\n"):
        line = line.strip()
        if line.startswith(VERDICT_MARKER):
            verdict = line[len(VERDICT_MARKER):].strip()
        elif line.startswith(FEEDBACK_MARKER):
            feedback = line[len(FEEDBACK_MARKER):].strip()

    if verdict is None:
        return EvaluationResult(verdict=ERROR_VERDICT, feedback=UNPARSEABLE_FEEDBACK, passed=False)

    return EvaluationResult(verdict=verdict, feedback=feedback, passed=is_passing(verdict))
