"""One-time DB setup: create tables and seed a demo quiz."""
from quiz_gamification.db.session import Base, get_engine, session_scope
from quiz_gamification.db.models import Question, Quiz

DEMO_QUESTIONS = [
    {
        "question_text": "What is the capital of France?",
        "option_a": "Berlin",
        "option_b": "Madrid",
        "option_c": "Paris",
        "option_d": "Rome",
        "correct_answer": "Paris",
        "difficulty": "easy",
        "hint": "It is known as the City of Light.",
        "explanation": "Paris has been the French capital since 987.",
    },
    {
        "question_text": "Which river flows through Cairo?",
        "option_a": "Nile",
        "option_b": "Congo",
        "option_c": "Niger",
        "option_d": "Zambezi",
        "correct_answer": "Nile",
        "difficulty": "medium",
        "hint": "It is the longest river in Africa.",
    },
    {
        "question_text": "Mount Kilimanjaro is in Kenya.",
        "question_type": "true_false",
        "correct_answer": "False",
        "difficulty": "medium",
        "explanation": "Kilimanjaro is in Tanzania.",
    },
    {
        "question_text": "What is the smallest country in the world by area?",
        "option_a": "Monaco",
        "option_b": "Vatican City",
        "option_c": "San Marino",
        "option_d": "Liechtenstein",
        "correct_answer": "Vatican City",
        "points": 20,
        "time_limit": 20,
        "difficulty": "hard",
    },
]

# 1. Create all tables
engine = get_engine()
Base.metadata.create_all(bind=engine)
print("✅ All tables created")

with session_scope() as db:
    # 2. Demo quiz
    quiz = db.query(Quiz).filter(Quiz.title == "World Geography").first()
    if not quiz:
        quiz = Quiz(
            title="World Geography",
            description="Capitals, rivers and mountains",
            category="geography",
            difficulty="medium",
        )
        db.add(quiz)
        db.commit()
        db.refresh(quiz)
        print(f"✅ Created quiz #{quiz.id}: {quiz.title}")
    else:
        print("  Demo quiz already exists")

    # 3. Its questions
    if db.query(Question).filter(Question.quiz_id == quiz.id).count() == 0:
        for data in DEMO_QUESTIONS:
            db.add(Question(quiz_id=quiz.id, **data))
        db.commit()
        print(f"✅ Added {len(DEMO_QUESTIONS)} questions")
    else:
        print("  Demo questions already exist")

print("\n🎉 Seed complete!")
