"""Curated content sent when the generator is down or returns junk."""
from typing import List

from imparo.constants import DAYS_PER_WEEK
from imparo.models.content import PracticePrompt, Story, StoryQuestion
from imparo.models.quiz import QuizQuestion, WeeklyQuiz
from imparo.models.vocab import VocabularyItem
from imparo.services.daily_plan import vocabulary_count

# term, translation, pronunciation, example, example translation
_WORD_BANK = [
    ("Ciao", "Hello/Goodbye", "chow", "Ciao, come stai?", "Hello, how are you?"),
    ("Buongiorno", "Good morning", "bwon-jor-no", "Buongiorno, signore!", "Good morning, sir!"),
    ("Grazie", "Thank you", "grahts-yeh", "Grazie mille!", "Thank you very much!"),
    ("Prego", "You're welcome", "preh-go", "Prego, si accomodi.", "You're welcome, have a seat."),
    ("Per favore", "Please", "pehr fah-vo-reh", "Un caffè, per favore.", "A coffee, please."),
    ("Scusi", "Excuse me", "skoo-zee", "Scusi, dov'è la stazione?", "Excuse me, where is the station?"),
    ("Casa", "House/Home", "kah-zah", "La mia casa è piccola.", "My house is small."),
    ("Acqua", "Water", "ahk-kwah", "Vorrei un bicchiere d'acqua.", "I would like a glass of water."),
    ("Pane", "Bread", "pah-neh", "Il pane è fresco.", "The bread is fresh."),
    ("Amico", "Friend", "ah-mee-ko", "Marco è il mio amico.", "Marco is my friend."),
    ("Famiglia", "Family", "fah-mee-lyah", "La mia famiglia è grande.", "My family is big."),
    ("Oggi", "Today", "oh-jee", "Oggi fa bel tempo.", "The weather is nice today."),
    ("Domani", "Tomorrow", "doh-mah-nee", "Ci vediamo domani.", "See you tomorrow."),
    ("Strada", "Street", "strah-dah", "La strada è lunga.", "The street is long."),
    ("Treno", "Train", "treh-no", "Il treno parte alle otto.", "The train leaves at eight."),
    ("Mangiare", "To eat", "mahn-jah-reh", "Mi piace mangiare la pizza.", "I like to eat pizza."),
    ("Bere", "To drink", "beh-reh", "Voglio bere un tè.", "I want to drink a tea."),
    ("Parlare", "To speak", "pahr-lah-reh", "Parlo un po' di italiano.", "I speak a little Italian."),
    ("Andare", "To go", "ahn-dah-reh", "Vado al mercato.", "I'm going to the market."),
    ("Bello", "Beautiful", "bel-lo", "Che bello questo posto!", "How beautiful this place is!"),
    ("Grande", "Big", "grahn-deh", "Roma è una città grande.", "Rome is a big city."),
    ("Piccolo", "Small", "peek-ko-lo", "Ho un cane piccolo.", "I have a small dog."),
    ("Libro", "Book", "lee-bro", "Leggo un libro.", "I'm reading a book."),
    ("Lavoro", "Work", "lah-vo-ro", "Vado al lavoro in bici.", "I go to work by bike."),
    ("Sempre", "Always", "sem-preh", "Studio sempre la sera.", "I always study in the evening."),
    ("Mai", "Never", "my", "Non bevo mai il latte.", "I never drink milk."),
    ("Cena", "Dinner", "cheh-nah", "La cena è alle otto.", "Dinner is at eight."),
    ("Pranzo", "Lunch", "prahn-dzo", "Il pranzo è pronto.", "Lunch is ready."),
    ("Colazione", "Breakfast", "ko-lah-tsyo-neh", "Faccio colazione al bar.", "I have breakfast at the café."),
    ("Mercato", "Market", "mehr-kah-to", "Il mercato apre presto.", "The market opens early."),
    ("Negozio", "Shop", "neh-go-tsyo", "Il negozio è chiuso.", "The shop is closed."),
    ("Chiesa", "Church", "kyeh-zah", "La chiesa è antica.", "The church is old."),
    ("Piazza", "Square", "pyaht-tsah", "Ci vediamo in piazza.", "See you in the square."),
    ("Mare", "Sea", "mah-reh", "Andiamo al mare domenica.", "We go to the sea on Sunday."),
    ("Montagna", "Mountain", "mon-tah-nyah", "La montagna è alta.", "The mountain is high."),
    ("Sole", "Sun", "so-leh", "Oggi c'è il sole.", "It's sunny today."),
    ("Pioggia", "Rain", "pyod-jah", "Domani arriva la pioggia.", "Rain is coming tomorrow."),
    ("Caldo", "Hot", "kahl-do", "Fa molto caldo.", "It's very hot."),
    ("Freddo", "Cold", "frehd-do", "L'acqua è fredda.", "The water is cold."),
    ("Scrivere", "To write", "skree-veh-reh", "Scrivo una lettera.", "I'm writing a letter."),
    ("Leggere", "To read", "lehd-jeh-reh", "Mi piace leggere.", "I like to read."),
    ("Dormire", "To sleep", "dor-mee-reh", "Dormo otto ore.", "I sleep eight hours."),
    ("Capire", "To understand", "kah-pee-reh", "Non capisco, scusi.", "I don't understand, sorry."),
    ("Aprire", "To open", "ah-pree-reh", "Puoi aprire la finestra?", "Can you open the window?"),
    ("Nuovo", "New", "nwo-vo", "Ho un telefono nuovo.", "I have a new phone."),
    ("Vecchio", "Old", "vehk-kyo", "La città vecchia è bella.", "The old town is beautiful."),
    ("Felice", "Happy", "feh-lee-cheh", "Sono felice di vederti.", "I'm happy to see you."),
    ("Stanco", "Tired", "stahn-ko", "Stasera sono stanco.", "I'm tired tonight."),
    ("Presto", "Early/Soon", "prehs-to", "A presto!", "See you soon!"),
    ("Tardi", "Late", "tahr-dee", "È troppo tardi.", "It's too late."),
]

_WEEKLY_QUOTA = sum(vocabulary_count(d) for d in range(1, DAYS_PER_WEEK + 1))


def fallback_words(count: int, week: int = 1, day: int = 1) -> List[VocabularyItem]:
    """
    `count` distinct words from the bank. Each day starts where the previous
    day's quota ended, so the days of one week never share a word.
    """
    count = max(0, min(int(count), len(_WORD_BANK)))
    before = sum(vocabulary_count(d) for d in range(1, int(day)))
    offset = ((int(week) - 1) * _WEEKLY_QUOTA + before) % len(_WORD_BANK)
    picked = [_WORD_BANK[(offset + i) % len(_WORD_BANK)] for i in range(count)]
    return [
        VocabularyItem(term=t, translation=tr, pronunciation=p, example=ex, example_translation=ext, week=int(week))
        for t, tr, p, ex, ext in picked
    ]


def fallback_story(theme: str) -> Story:
    return Story(
        title="Una Storia Semplice",
        story=(
            "Ciao! Mi chiamo Marco. Sono italiano e vivo a Roma. Oggi è una bella giornata. "
            "Il sole splende e gli uccelli cantano. Marco va al parco per camminare. "
            "Incontra un amico e si salutano. 'Buongiorno, come stai?' chiede Marco. "
            "'Sto bene, grazie!' risponde l'amico. Poi vanno insieme al bar per prendere un caffè."
        ),
        translation=(
            "Hello! My name is Marco. I am Italian and I live in Rome. Today is a beautiful day. "
            "The sun is shining and the birds are singing. Marco goes to the park to walk. "
            "He meets a friend and they greet each other. 'Good morning, how are you?' asks Marco. "
            "'I'm fine, thank you!' replies the friend. Then they go together to the bar to have a coffee."
        ),
        vocabulary_used=["Ciao", "Buongiorno", "grazie"],
        questions=[
            StoryQuestion("Come si chiama il protagonista?", "What is the protagonist's name?",
                          "Si chiama Marco", "His name is Marco"),
            StoryQuestion("Dove vive Marco?", "Where does Marco live?", "Vive a Roma", "He lives in Rome"),
            StoryQuestion("Cosa fanno Marco e il suo amico?", "What do Marco and his friend do?",
                          "Vanno al bar per prendere un caffè", "They go to the bar to have a coffee"),
        ],
    )


def fallback_practice_prompt(theme: str, vocabulary: List[VocabularyItem]) -> PracticePrompt:
    words = [v.term for v in vocabulary[:5]] or ["Ciao", "Grazie", "Oggi", "Bello", "Parlare"]
    return PracticePrompt(
        title="Writing Practice",
        instructions="Write 3-5 sentences in Italian about the theme using the vocabulary we've learned.",
        prompt=f'Scrivi 3-5 frasi in italiano su "{theme}". Usa le parole che abbiamo imparato.',
        prompt_translation=f'Write 3-5 sentences in Italian about "{theme}". Use the words we\'ve learned.',
        vocabulary_to_use=words,
        example_response="Oggi parlo italiano. Studio molto. Mi piace imparare nuove parole.",
        example_translation="Today I speak Italian. I study a lot. I like learning new words.",
        tips=[
            "Start with simple sentences",
            "Use vocabulary from this week",
            "Don't worry about perfection",
        ],
    )


def fallback_quiz(week: int, theme: str, vocabulary: List[VocabularyItem]) -> WeeklyQuiz:
    words = vocabulary[:6] or fallback_words(6, week, 7)
    questions: List[QuizQuestion] = []
    for i, w in enumerate(words):
        if i % 2 == 0:
            questions.append(
                QuizQuestion(
                    kind="translation",
                    question=f'Translate to Italian: "{w.translation}"',
                    answer=w.term,
                    explanation=f"{w.term} = {w.translation}",
                )
            )
        else:
            questions.append(
                QuizQuestion(
                    kind="definition",
                    question=f'What does "{w.term}" mean?',
                    answer=w.translation,
                    explanation=w.example or "",
                )
            )
    return WeeklyQuiz(
        week=int(week),
        theme=theme,
        title=f"Week {week} Quiz",
        instructions="Answer each question, then check the solutions at the bottom.",
        questions=questions,
    )


def fallback_feedback(theme: str) -> str:
    return (
        "Grazie per aver condiviso le tue frasi! (Thank you for sharing your sentences!)\n\n"
        "I can't give detailed feedback right now. Keep practicing with the vocabulary "
        f"about {theme}. Your effort to write in Italian counts! 💪"
    )
