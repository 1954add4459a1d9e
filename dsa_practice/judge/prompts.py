from dsa_practice.models import Verdict

VERDICT_OPTIONS = "/".join(v.value for v in Verdict)

EVALUATION_PROMPT = """You are a code judge for a DSA practice platform. Evaluate the following C++ solution.

PROBLEM: {title}

DESCRIPTION:
{description}

TEST CASES:{test_cases}

USER'S CODE:
{code}

INSTRUCTIONS:
1. Analyze the logic and correctness of the code
2. Check if it would produce correct output for all test cases
3. Check for potential runtime errors, out of bounds, etc.

Respond in this EXACT format (use these exact words):
VERDICT: [{verdicts}]
FEEDBACK: [Brief explanation of why the code passed or failed, max 2-3 sentences]

Be fair but strict. If the logic is correct and handles all cases, mark it as Accepted."""

TEST_CASE_BLOCK = "\nTest Case {index}:\nInput: {input}\nExpected Output: {expected}\n"


def render_test_cases(test_cases) -> str:
    return "".join(
        TEST_CASE_BLOCK.format(index=i, input=tc.input, expected=tc.expected)
        for i, tc in enumerate(test_cases, start=1)
    )


def build_evaluation_prompt(problem, code: str) -> str:
    """Render the judge prompt for a problem and the candidate source, verbatim."""
    # str.format does not re-scan substituted values, so braces in user code are safe
    return EVALUATION_PROMPT.format(
        title=problem.title,
        description=problem.description,
        test_cases=render_test_cases(problem.test_cases),
        code=code,
        verdicts=VERDICT_OPTIONS,
    )
