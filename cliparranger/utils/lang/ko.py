"""Korean UI strings."""

STRINGS: dict[str, str] = {
    # Commands
    "Move segment": "세그먼트 이동",
    "Import source": "소스 가져오기",
    "Remove segment": "세그먼트 삭제",
    "Arrange segments": "세그먼트 배치",

    # Collision policies
    "Play in Front": "앞에 재생",
    "Play the dropped file first, then play the target file":
        "드롭한 파일을 먼저 재생한 뒤 대상 파일을 재생합니다",
    "Play Behind": "뒤에 재생",
    "Play the target file first, then play the dropped file":
        "대상 파일을 먼저 재생한 뒤 드롭한 파일을 재생합니다",
    "Split and Insert": "분할 후 삽입",
    "Split the target file at drop point and insert the dropped file in the middle":
        "드롭 지점에서 대상 파일을 분할하고 가운데에 드롭한 파일을 삽입합니다",
    "Replace Segment": "구간 교체",
    "Replace the segment of target file (matching dropped file duration) with the dropped file":
        "드롭한 파일 길이만큼 대상 파일의 구간을 드롭한 파일로 교체합니다",
}
