"""Console application wiring the review and reinforcement services together."""
import logging
import random
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from wordloop.config import settings
from wordloop.errors import DuplicateWord, EnqueueFailure, InvalidGrade, NotFound, StorageFailure
from wordloop.models.base import SessionLocal, init_db
from wordloop.models.reinforcement_models import QuestionMode, Stage
from wordloop.models.srs_models import ScheduledWord
from wordloop.monitoring import start_monitoring
from wordloop.services.due_selector import DueSelector
from wordloop.services.kv_store import SqlKeyValueStore
from wordloop.services.question_generator import MatchingQuestion, QuestionGenerator, TrueFalseQuestion
from wordloop.services.reinforcement_list import ReinforcementList
from wordloop.services.reinforcement_session import ReinforcementSession
from wordloop.services.review_service import ReviewService
from wordloop.services.word_service import WordService

HELP_TEXT = """Commands:
  add <term> = <meaning> [= <level>]   add a word
  list [query]                         list or search words
  delete <word id>                     delete a word
  review [easy|medium|hard]            review due words, or a difficulty band
  drill [typing|matching|truefalse]    practice the reinforcement list
  help                                 show this text
  quit                                 exit"""

DRILL_HELP = "Type your answer. ':mode <typing|matching|truefalse>' switches style, ':hint' toggles the hint, ':quit' ends the drill."


class WordLoop:
    """Main application class."""

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the application."""
        self.input = input_func
        self.output = output
        self.rng = rng or random.Random()
        self.db: Optional[Session] = None
        self.word_service: Optional[WordService] = None
        self.reinforcement_list: Optional[ReinforcementList] = None
        self.review_service: Optional[ReviewService] = None
        self.due_selector: Optional[DueSelector] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        init_db()
        self.db = SessionLocal()
        self.logger.info("Database initialized")

        self.word_service = WordService(self.db)
        self.reinforcement_list = ReinforcementList(SqlKeyValueStore(self.db))
        self.review_service = ReviewService(self.word_service, self.reinforcement_list)
        self.due_selector = DueSelector(self.word_service)

        if settings.monitoring.metrics_port:
            start_monitoring(settings.monitoring.metrics_port)
            self.logger.info(f"Metrics exported on port {settings.monitoring.metrics_port}")

        self.running = True

    def stop(self) -> None:
        """Stop the application."""
        if not self.running:
            return
        if self.db:
            self.db.close()
            self.db = None
            self.logger.info("Database session closed")
        self.running = False

    def _ask(self, prompt: str) -> Optional[str]:
        try:
            return self.input(prompt)
        except EOFError:
            return None

    def handle_command(self, line: str) -> bool:
        """Run one console command. Returns False when the user asked to quit."""
        command, _, rest = line.strip().partition(" ")
        rest = rest.strip()
        try:
            if command in ("quit", "exit"):
                return False
            elif command == "add":
                self.add_word(rest)
            elif command == "list":
                self.list_words(rest)
            elif command == "delete":
                self.delete_word(rest)
            elif command == "review":
                self.review(rest or None)
            elif command == "drill":
                self.drill(QuestionMode(rest) if rest else QuestionMode.TYPING)
            elif command in ("help", ""):
                self.output(HELP_TEXT)
            else:
                self.output(f"Unknown command: {command}. Type 'help'.")
        except StorageFailure as e:
            self.output(f"Storage error: {e}. Nothing was changed, try again.")
        except (DuplicateWord, NotFound, InvalidGrade, ValueError) as e:
            self.output(str(e))
        return True

    def add_word(self, text: str) -> None:
        parts = [part.strip() for part in text.split("=")]
        if len(parts) < 2:
            raise ValueError("Usage: add <term> = <meaning> [= <level>]")
        level = int(parts[2]) if len(parts) > 2 and parts[2] else None
        word = self.word_service.add_word(parts[0], parts[1], level=level)
        self.output(f"Added {word.term} ({word.id})")

    def list_words(self, query: str) -> None:
        words = self.word_service.list_words(query or None)
        if not words:
            self.output("No words.")
        for word in words:
            level = f" [level {word.level}]" if word.level else ""
            self.output(f"{word.id}  {word.term} - {word.meaning}{level}")

    def delete_word(self, word_id: str) -> None:
        if self.word_service.delete_word(word_id):
            self.output("Deleted.")
        else:
            self.output(f"No word with id {word_id}")

    def review(self, band: Optional[str] = None) -> None:
        """Review due words (or a difficulty band) one at a time, front of the queue first."""
        if band:
            queue: List[ScheduledWord] = self.due_selector.by_band(band)
        else:
            queue = self.due_selector.due_now()
        if not queue:
            self.output("Nothing due today.")
            return

        while queue:
            current = queue[0]
            self.output(f"\n{current.word.term}   ({len(queue)} left)")
            if self._ask("Enter to reveal, q to stop: ") in (None, "q"):
                return
            self.output(f"Meaning: {current.word.meaning}")
            answer = self._ask("Grade 0 (forgot) / 3 (hard) / 5 (easy): ")
            if answer is None or answer == "q":
                return
            try:
                self.review_service.grade(current.id, int(answer))
            except (InvalidGrade, ValueError):
                self.output("Please answer 0, 3 or 5.")
                continue
            except EnqueueFailure as e:
                queue.pop(0)
                self._retry_enqueue(e)
                continue
            except StorageFailure as e:
                self.output(f"Storage error: {e}. Grade again to retry.")
                continue
            queue.pop(0)
        self.output("Review finished.")

    def _retry_enqueue(self, error: EnqueueFailure) -> None:
        """Offer to retry adding a graded word to the reinforcement list."""
        self.output(f"Grade saved, but the word was not added to the reinforcement list: {error}")
        while self._ask("Enter to retry, s to skip: ") not in (None, "s"):
            try:
                self.review_service.retry_enqueue(error.word_id)
            except StorageFailure as e:
                self.output(f"Storage error: {e}.")
                continue
            self.output("Added to the reinforcement list.")
            return
        self.output("Skipped, the word is not on the reinforcement list.")

    def _show_question(self, session: ReinforcementSession) -> None:
        question = session.question
        self.output(
            f"\n{question.prompt}   (streak {session.streak}/{session.reinforcement_list.required_streak}, "
            f"{session.remaining} in list)"
        )
        if session.warning:
            self.output(f"Warning: {session.warning}")
        if isinstance(question, MatchingQuestion):
            for index, option in enumerate(question.options, start=1):
                self.output(f"  {index}. {option.label}")
        elif isinstance(question, TrueFalseQuestion):
            self.output(f"  Meaning: {question.statement.meaning}  (y/n)")
        if session.hint:
            self.output(f"  Hint: {session.hint}")

    def _parse_answer(self, session: ReinforcementSession, text: str):
        if session.mode is QuestionMode.MATCHING:
            if not text.strip():
                return None
            index = int(text) - 1
            if index < 0:
                raise ValueError(text)
            return index
        if session.mode is QuestionMode.TRUE_FALSE:
            return {"y": True, "n": False}.get(text.strip().lower())
        return text

    def drill(self, mode: QuestionMode = QuestionMode.TYPING) -> None:
        """Practice the reinforcement list until it is empty or the user stops."""
        session = ReinforcementSession(
            self.reinforcement_list,
            self.word_service,
            QuestionGenerator(self.word_service, self.rng),
            rng=self.rng,
            mode=mode,
        )
        session.load()
        self.output(DRILL_HELP)

        while not session.is_empty:
            if session.stage is Stage.FEEDBACK:
                if self._ask("Enter to continue: ") is None:
                    return
                session.advance()
                continue

            self._show_question(session)
            text = self._ask("> ")
            if text is None or text.strip() == ":quit":
                return
            if text.strip() == ":hint":
                session.toggle_hint()
                continue
            if text.strip().startswith(":mode"):
                session.switch_mode(QuestionMode(text.strip()[len(":mode"):].strip()))
                continue

            try:
                feedback = session.submit(self._parse_answer(session, text))
            except (ValueError, IndexError):
                self.output("Pick one of the listed options.")
                continue
            except StorageFailure as e:
                self.output(f"Storage error: {e}. Answer again to retry.")
                continue
            if feedback is not None:
                self.output(feedback.message)
        self.output("Reinforcement list is empty.")

    def run(self) -> None:
        """Run the application."""
        self.start()
        try:
            self.output(HELP_TEXT)
            while True:
                line = self._ask("wordloop> ")
                if line is None or not self.handle_command(line):
                    break
        except KeyboardInterrupt:
            self.logger.info("Received keyboard interrupt")
        finally:
            self.stop()
