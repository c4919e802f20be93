import sys
import os
import logging
from execution import agt, lf, lof

# Nuitka 대응: 실행 경로 기반으로 base_dir 설정
if getattr(sys, 'frozen', False):
    base_dir = os.path.dirname(sys.executable)
else:
    base_dir = os.path.dirname(os.path.abspath(__file__))

if base_dir not in sys.path:
    sys.path.insert(0, base_dir)

GROUPS = {
    "agt": agt.main,
    "lf": lf.main,
    "lof": lof.main,
}

USAGE = """사용법: cli_launcher.py <agt|lf|lof> <command> [options]
  agt info|unpack|pack|decipher   NayaPack 아카이브 (.agt)
  lf  info|unpack|pack            지형 블록 테이블 (.lf)
  lof info|unpack|pack            모델 테이블 (.lof)
인자 없이 실행하면 메뉴 모드로 동작합니다."""


# CLI 헤더
def print_banner():
    banner = r"""
   _   _                     _   _       ____                   _
  | \ | | __ _ _   _  __ _  | | | |_ __ |  _ \ ___ _ __   __ _ | | _____ _ __
  |  \| |/ _` | | | |/ _` | | | | | '_ \| |_) / _ \ '_ \ / _` || |/ / _ \ '__|
  | |\  | (_| | |_| | (_| | | |_| | | | |  _ <  __/ |_) | (_| ||   <  __/ |
  |_| \_|\__,_|\__, |\__,_|  \___/|_| |_|_| \_\___| .__/ \__,_||_|\_\___|_|
               |___/                              |_|
  NayaPack (.agt) / LF / LOF UnPacker / RePacker Tool CLI ver.
  -------------------------------
    """
    print(banner)


def ask(prompt: str):
    value = input(f"{prompt} [q = 취소]: ").strip('" ')
    if value.lower() in ["q", "취소"]:
        return None
    return value


# 메뉴 번호 → (그룹, 커맨드, 질문 목록)
MENU = {
    "1": ("agt", "unpack", ["언팩할 .agt 경로 입력", "출력 폴더 경로 입력"], "NayaPack 언팩 (.agt)"),
    "2": ("agt", "pack", ["원본 파일이 있는 폴더 경로 입력", "출력할 .agt 파일 이름 입력"], "NayaPack 리팩 (.agt)"),
    "3": ("agt", "decipher", ["복호화할 .agt 경로 입력"], "NayaPack 전체 복호화 (분석용)"),
    "4": ("lf", "unpack", ["언팩할 .lf 경로 입력", "출력 폴더 경로 입력"], "지형 블록 언팩 (.lf)"),
    "5": ("lf", "pack", ["manifest.json 경로 입력", "출력할 .lf 파일 이름 입력"], "지형 블록 리팩 (.lf)"),
    "6": ("lof", "unpack", ["언팩할 .lof 경로 입력", "출력 폴더 경로 입력"], "모델 테이블 언팩 (.lof)"),
    "7": ("lof", "pack", ["manifest.json 경로 입력", "출력할 .lof 파일 이름 입력"], "모델 테이블 리팩 (.lof)"),
}


def interactive():
    while True:
        print_banner()
        print("실행할 작업을 선택하세요 :")
        for number, (_, _, _, title) in MENU.items():
            print(f"  [{number}] {title}")
        print("  [Q] 종료")
        print("")

        choice = input("▶ 번호 선택: ").strip().lower()
        logging.info(f"[선택] 사용자 입력: {choice}")

        if choice == "q":
            print("프로그램을 종료합니다.")
            return 0

        if choice not in MENU:
            logging.warning(f"[경고] 잘못된 입력: {choice}")
            print("올바른 번호를 입력하세요.")
            continue

        group, command, questions, _ = MENU[choice]
        answers = []
        for question in questions:
            answer = ask(question)
            if answer is None:
                break
            answers.append(answer)
        else:
            logging.info(f"[{group} {command}] 인자: {answers}")
            status = GROUPS[group]([command] + answers)
            if status != 0:
                print("⚠️ 작업 중 오류가 발생했습니다. 로그를 확인하세요.")

        while True:
            go_back = input("메인 메뉴로 돌아가시겠습니까? (Y/N): ").strip().lower()
            if go_back == "y":
                break
            elif go_back == "n":
                print("프로그램을 종료합니다.")
                return 0
            else:
                print("Y 또는 N으로 입력해주세요.")


def main(args=None) -> int:
    if args is None:
        args = sys.argv[1:]

    if not args:
        return interactive()

    group, rest = args[0], args[1:]
    if group not in GROUPS:
        print(USAGE)
        return 2
    return GROUPS[group](rest)


if __name__ == "__main__":
    sys.exit(main())
