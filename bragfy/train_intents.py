"""
bragfy/train_intents.py — Treina e persiste o classificador de intenções

Uso: python -m bragfy.train_intents  (ou bragfy-train)
"""

import joblib
from sklearn.metrics import accuracy_score, classification_report
from sklearn.model_selection import train_test_split

from bragfy import config
from bragfy.nlu import build_pipeline, load_corpus


def train():
    print("🚀 Iniciando treinamento do classificador de intenções Bragfy...")

    if not config.INTENT_DATA_PATH.exists():
        print(f"❌ Erro: corpus {config.INTENT_DATA_PATH} não encontrado.")
        return None

    df = load_corpus()
    print(f"📝 {len(df)} exemplos carregados ({df['intent'].nunique()} intenções).")

    X_train, X_test, y_train, y_test = train_test_split(
        df["text"], df["intent"], test_size=0.2, random_state=42, stratify=df["intent"]
    )

    # 1. Avaliação em holdout
    pipeline = build_pipeline()
    pipeline.fit(X_train, y_train)
    preds = pipeline.predict(X_test)
    print(f"\n📊 Acurácia (holdout): {accuracy_score(y_test, preds) * 100:.1f}%")
    print(classification_report(y_test, preds, zero_division=0))

    # 2. Modelo final com o corpus completo
    final_pipeline = build_pipeline()
    final_pipeline.fit(df["text"], df["intent"])

    config.INTENT_MODEL_PATH.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(final_pipeline, config.INTENT_MODEL_PATH)
    print(f"💾 Pipeline salvo em: {config.INTENT_MODEL_PATH}")
    return final_pipeline


def main():
    pipeline = train()
    raise SystemExit(0 if pipeline is not None else 1)


if __name__ == "__main__":
    main()
