import os
import logging
from flask import Flask, request, jsonify
from judge import config
from judge.catalog import load_challenges
from judge.coordinator import SubmissionCoordinator
from judge.exception import ChallengeNotFoundError
from judge.store import build_store
from runner.factory import select_runner

LOG_FILE = os.getenv("LOG_FILE", "logs/judge.log")
os.makedirs(os.path.dirname(LOG_FILE) or ".", exist_ok=True)
logging.basicConfig(
    filename=LOG_FILE,
    level=logging.INFO,
)
app = Flask(__name__)
if __name__ != "__main__":
    # let flask app use gunicorn's logger
    gunicorn_logger = logging.getLogger("gunicorn.error")
    app.logger.handlers = gunicorn_logger.handlers
    app.logger.setLevel(gunicorn_logger.level)
    logging.getLogger().setLevel(gunicorn_logger.level)

    # Allow overriding log level via environment variable
    if os.getenv("JUDGE_DEBUG", "").lower() == "true":
        app.logger.setLevel(logging.DEBUG)
        logging.getLogger().setLevel(logging.DEBUG)
logger = app.logger

# setup judge
CHALLENGES = load_challenges(config.CHALLENGES_DIR)
STORE = build_store(config.SUBMISSION_STORE)
RUNNER = select_runner(config.RUNNER_BACKEND, store=STORE)
COORDINATOR = SubmissionCoordinator(CHALLENGES, RUNNER, store=STORE)
LIFECYCLE = getattr(RUNNER, "lifecycle", None)
if LIFECYCLE is not None:
    LIFECYCLE.start()


def _public_challenge(challenge):
    data = challenge.model_dump()
    # hidden cases are judged but never shown
    data["testCases"] = [c for c in data["testCases"] if not c["hidden"]]
    data.pop("solutions", None)
    return data


@app.get("/api/challenges")
def list_challenges():
    return jsonify([{
        "id": c.id,
        "title": c.title,
        "difficulty": c.difficulty,
        "description": c.description,
    } for c in CHALLENGES.values()])


@app.get("/api/challenge/<challenge_id>")
def get_challenge(challenge_id: str):
    challenge = CHALLENGES.get(challenge_id)
    if challenge is None:
        return jsonify({"error": "Challenge not found"}), 404
    return jsonify(_public_challenge(challenge))


@app.post("/api/submit")
def submit():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"error": "Invalid request body"}), 400
    challenge_id = body.get("challengeId")
    code = body.get("code")
    if not isinstance(challenge_id, str) or not isinstance(code, str):
        return jsonify({"error": "challengeId and code are required"}), 400
    if not code.strip():
        return jsonify({"error": "code must not be empty"}), 400
    try:
        response = COORDINATOR.submit(code, challenge_id)
    except ChallengeNotFoundError:
        return jsonify({"error": "Challenge not found"}), 404
    logger.debug(f"judged submission [challenge={challenge_id}, "
                 f"success={response.success}]")
    return jsonify(response.model_dump())


@app.get("/status")
def status():
    ret = {
        "runner": RUNNER.name,
        "available": RUNNER.available(),
        "challenges": len(CHALLENGES),
    }
    if LIFECYCLE is not None:
        ret.update({
            "cleanupQueueSize": LIFECYCLE.pending(),
            "trackedSandboxes": LIFECYCLE.tracked_count(),
        })
    return jsonify(ret), 200


# for local debug
# if __name__ == "__main__":
#     app.run(host="0.0.0.0", port=8080, debug=True)
