# client/rep_demo.py

import time
import cv2
import requests
import pyttsx3
from threading import Thread
from queue import Queue

from form_coach import config
from form_coach.client.pose_utils import PoseEstimator, draw_skeleton
from form_coach.client.session import AnalysisSession, FrameDriver

# ---------- Menu ----------
EXERCISE_OPTIONS = {
    "1": "squat",
    "2": "lunge",
    "3": "deadlift",
    "4": "plank",
    "5": "pushup",
}

WINDOW_NAME = "Form Coach"

# Consecutive failed camera reads tolerated before the demo gives up
MAX_READ_FAILURES = 60
READ_RETRY_DELAY = 0.05

# ---------- Queue for background coaching calls ----------
rep_queue: Queue = Queue()     # completed reps to send to backend

# Last coaching line from the backend, drawn under the live feedback
last_coaching_message: str = ""


def choose_exercise():
    print("Select exercise to analyze:")
    print("  1. Squat")
    print("  2. Lunge")
    print("  3. Deadlift")
    print("  4. Plank")
    print("  5. Pushup")
    choice = input("Enter 1, 2, 3, 4, or 5: ").strip()
    exercise = EXERCISE_OPTIONS.get(choice, "squat")
    print(f"\nYou selected: {exercise}\n")
    return exercise


# ---------- Speech ----------

def speak_message(text: str):
    """
    Speak one coaching line with a throwaway engine. Called on its own
    thread by the coaching worker.
    """
    if not text:
        return
    try:
        engine = pyttsx3.init()
        engine.setProperty("rate", 165)
        engine.say(text)
        engine.runAndWait()
        engine.stop()
    except Exception as e:
        print("TTS error:", e)


# ---------- Background coaching worker ----------

def coaching_worker():
    """
    Reads completed rep summaries from rep_queue, asks the backend for a
    coaching line, stores it for the overlay and speaks it.
    """
    global last_coaching_message

    while True:
        rep_summary = rep_queue.get()
        try:
            resp = requests.post(
                f"{config.BACKEND_URL}/analyze_rep",
                json=rep_summary,
                timeout=config.BACKEND_TIMEOUT,
            )
            if resp.status_code == 200:
                msg = resp.json().get("message", "")
                if msg:
                    last_coaching_message = msg
                    Thread(target=speak_message, args=(msg,), daemon=True).start()
            else:
                print("Coaching backend error:", resp.status_code, resp.text)
        except requests.RequestException as e:
            print("Coaching worker exception:", e)
        finally:
            rep_queue.task_done()


def queue_completed_rep(output):
    """FrameDriver subscriber: hand completed reps to the coaching worker."""
    if output.completed_rep is None:
        return
    print(f"=== REP COMPLETED (rep_id={output.completed_rep['rep_id']}) ===")
    print("Rep summary:", output.completed_rep)
    rep_queue.put(output.completed_rep)   # returns instantly


def log_session(summary):
    """Send the finished session to the backend's session log."""
    try:
        resp = requests.post(f"{config.BACKEND_URL}/sessions", json=summary,
                             timeout=config.BACKEND_TIMEOUT)
        if resp.status_code == 200:
            print("Session logged:", resp.json().get("id"))
        else:
            print("Session log error:", resp.status_code, resp.text)
    except requests.RequestException as e:
        print("Session log exception:", e)


def put_text(image, text, y, scale=0.7, color=(200, 255, 200)):
    cv2.putText(image, text, (20, y), cv2.FONT_HERSHEY_SIMPLEX, scale, color, 2)


def draw_overlay(image, exercise, output):
    result = output.result
    put_text(image, f"Exercise: {exercise}", 30)
    if output.hold_seconds is not None:
        put_text(image, f"Hold: {output.hold_seconds:.1f}s", 60, 0.9, (0, 255, 0))
    else:
        put_text(image, f"Reps: {output.rep_count}", 60, 0.9, (0, 255, 0))
        if not output.in_position:
            put_text(image, "Get into position", 90, 0.7, (0, 200, 255))

    put_text(image, f"Form: {result.overall_form.value}", 120, 0.7, (0, 255, 255))
    for i, tip in enumerate(result.feedback):
        put_text(image, tip, 150 + 28 * i, 0.55, (255, 255, 255))


def main():
    global last_coaching_message

    # 1) Choose exercise
    exercise = choose_exercise()

    # 2) Start camera
    cap = cv2.VideoCapture(config.CAMERA_INDEX)
    if not cap.isOpened():
        print("Error: Could not open camera.")
        return

    # 3) Init pose estimator, analysis session and its driver
    pose_estimator = PoseEstimator()
    session = AnalysisSession(exercise)
    driver = FrameDriver(session)
    driver.subscribe(queue_completed_rep)

    # 4) Start background coaching worker
    Thread(target=coaching_worker, daemon=True).start()

    # 5) Countdown so the user can step back into frame
    countdown_seconds = 5
    countdown_start = time.time()
    countdown_done = False
    read_failures = 0

    print(f"Get into position... starting in {countdown_seconds} seconds.")

    while True:
        ret, frame = cap.read()
        if not ret:
            # Dropped frame: keep the session and the last result, give up
            # only when the camera has been gone for a while
            read_failures += 1
            if read_failures >= MAX_READ_FAILURES:
                print(f"Camera returned no frame {read_failures} times in a row, stopping.")
                break
            time.sleep(READ_RETRY_DELAY)
            continue
        read_failures = 0

        display_frame = frame.copy()

        # ---------- countdown ----------
        if not countdown_done:
            remaining = countdown_seconds - int(time.time() - countdown_start)

            if remaining > 0:
                put_text(display_frame, f"Get ready: {remaining}", 100, 1.2, (0, 255, 255))
            else:
                countdown_done = True
                session.start()
                print("Go! Analyzing now.")

            cv2.imshow(WINDOW_NAME, display_frame)
            if cv2.waitKey(1) & 0xFF == ord('q'):
                break
            continue

        # ---------- pose + analysis ----------
        landmarks = pose_estimator.process(frame)
        output = driver.tick(landmarks)

        draw_skeleton(display_frame, output.smoothed, output.result.overall_form.value)
        draw_overlay(display_frame, exercise, output)

        if last_coaching_message:
            put_text(display_frame, last_coaching_message,
                     display_frame.shape[0] - 30, 0.7, (0, 200, 255))

        cv2.imshow(WINDOW_NAME, display_frame)
        key = cv2.waitKey(1) & 0xFF
        if key == ord('q'):
            break
        if key == ord('r'):
            driver.reset()
            session.start()
            last_coaching_message = ""
            print("Session reset.")

    summary = session.stop()
    print("Session summary:", summary)
    if summary["frames"]:
        log_session(summary)

    pose_estimator.close()
    cap.release()
    cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
